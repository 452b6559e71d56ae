"""
RequestConfig — sampling parameters for one outbound chat completion.

Three presets exist: inline completion and explanation share the
conservative code-oriented defaults, chat uses the looser conversational
ones. config.yaml may override any recognised field per mode:

    request:
      completion:
        max_tokens: 1024
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

logger = logging.getLogger(__name__)

COMPLETION = "completion"
EXPLANATION = "explanation"
CHAT = "chat"

_CODE_PRESET = {
    "temperature": 0.5,
    "top_p": 0.95,
    "presence_penalty": 1.03,
    "frequency_penalty": 1.0,
}

_CHAT_PRESET = {
    "temperature": 0.7,
    "top_p": 1.0,
    "presence_penalty": 0.0,
    "frequency_penalty": 0.0,
}

PRESETS: dict[str, dict[str, Any]] = {
    COMPLETION: _CODE_PRESET,
    EXPLANATION: _CODE_PRESET,
    CHAT: _CHAT_PRESET,
}


@dataclass(frozen=True)
class RequestConfig:
    model: str
    max_tokens: int = 500
    temperature: float = 0.5
    top_p: float = 0.95
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0
    seed: int | None = None
    stream: bool = False

    @classmethod
    def for_mode(
        cls,
        mode: str,
        model: str,
        overrides: dict | None = None,
    ) -> "RequestConfig":
        """Build the preset for `mode`, then apply recognised overrides."""
        if mode not in PRESETS:
            raise ValueError(f"Unknown request mode: {mode!r}")

        config = cls(model=model, **PRESETS[mode])
        if not overrides:
            return config

        known = {f.name for f in fields(cls)} - {"model"}
        accepted = {}
        for key, value in overrides.items():
            if key in known:
                accepted[key] = value
            else:
                logger.warning("Ignoring unknown request option '%s' for mode '%s'", key, mode)
        if accepted.get("stream"):
            logger.warning("Streaming is not supported; forcing stream=false")
            accepted["stream"] = False
        return replace(config, **accepted)

    def to_payload(self, messages: list[dict]) -> dict:
        """OpenAI-compatible request body."""
        body = asdict(self)
        body["messages"] = messages
        return body


def from_config(cfg: dict, mode: str) -> RequestConfig:
    """Resolve the RequestConfig for `mode` from the loaded config dict."""
    model = cfg.get("models", {}).get(mode, "")
    if not model:
        logger.warning("No model configured for mode '%s'", mode)
    overrides = cfg.get("request", {}).get(mode, {})
    return RequestConfig.for_mode(mode, model, overrides)
