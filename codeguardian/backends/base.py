"""
Base backend abstraction.
The orchestrator only ever talks to this interface, so the concrete
transport (host, port, provider quirks) stays out of the core.
"""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass, field

from codeguardian.parser import response_content

logger = logging.getLogger(__name__)


@dataclass
class BackendResponse:
    """Standardized response from any backend."""
    ok: bool
    status_code: int = 200
    data: dict = field(default_factory=dict)
    backend_name: str = ""
    latency_ms: float = 0.0
    error: str = ""

    @property
    def content(self) -> str:
        """Extract assistant content from response data."""
        if not self.data:
            return ""
        return response_content(self.data)

    @property
    def text(self) -> str:
        """Content on success, the human-readable error otherwise."""
        return self.content if self.ok else self.error


class BaseBackend(abc.ABC):
    """
    Abstract base for chat-completion backends.
    Implementations must not raise from forward(); failures come back as
    BackendResponse(ok=False, error="Error: ...").
    """

    def __init__(self, name: str, url: str, timeout: float = 60):
        self.name = name
        self.url = url.rstrip("/")
        self.timeout = timeout

    @abc.abstractmethod
    async def forward(self, body: dict) -> BackendResponse:
        """
        Forward a chat completion request.
        Body is OpenAI-compatible format.
        Returns BackendResponse with data or error.
        """
        ...

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name!r} url={self.url!r}>"
