"""
Chat-completion transports for codeguardian.
"""
from codeguardian.backends.base import BaseBackend, BackendResponse
from codeguardian.backends.openai_compat import OpenAICompatibleBackend

__all__ = [
    "BaseBackend",
    "BackendResponse",
    "OpenAICompatibleBackend",
]
