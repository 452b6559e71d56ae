"""
Generic OpenAI-compatible backend.

Works with anything that accepts a chat-completions style POST:
llama.cpp server, vLLM, TGI, LocalAI, hosted compatible-mode APIs.
"""

from __future__ import annotations

import json
import logging
import time

import httpx

from codeguardian.backends.base import BaseBackend, BackendResponse
from codeguardian.config import get_api_key

logger = logging.getLogger(__name__)

DEFAULT_PATH = "/v1/chat/completions"


class OpenAICompatibleBackend(BaseBackend):
    """Backend for endpoints that speak the OpenAI chat-completions format."""

    def __init__(
        self,
        name: str,
        url: str,
        timeout: float = 60,
        api_key: str = "",
        path: str = DEFAULT_PATH,
    ):
        super().__init__(name, url, timeout)
        self.api_key = api_key
        self.path = "/" + path.lstrip("/")

    @classmethod
    def from_config(cls, cfg: dict) -> "OpenAICompatibleBackend":
        """Build from the `backend` section. Raises ConfigError without a key."""
        backend_cfg = cfg.get("backend", {})
        return cls(
            name=backend_cfg.get("name", "default"),
            url=backend_cfg.get("url", "http://localhost:8080"),
            timeout=backend_cfg.get("timeout", 60),
            api_key=get_api_key(cfg),
            path=backend_cfg.get("path", DEFAULT_PATH),
        )

    @property
    def endpoint(self) -> str:
        return f"{self.url}{self.path}"

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    async def forward(self, body: dict) -> BackendResponse:
        """Forward a non-streaming request."""
        t0 = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.endpoint,
                    json=body,
                    headers=self._headers(),
                )
                latency = (time.monotonic() - t0) * 1000

                if resp.status_code < 200 or resp.status_code >= 300:
                    logger.warning(
                        "Backend '%s' returned HTTP %d: %s",
                        self.name, resp.status_code, resp.text[:200],
                    )
                    return BackendResponse(
                        ok=False,
                        status_code=resp.status_code,
                        backend_name=self.name,
                        latency_ms=latency,
                        error=f"Error: {resp.status_code} - {resp.reason_phrase}",
                    )

                try:
                    data = resp.json()
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    logger.warning("Backend '%s' sent a malformed body: %s", self.name, e)
                    data = {}
                if not isinstance(data, dict):
                    logger.warning("Backend '%s' sent a non-object body", self.name)
                    data = {}
                return BackendResponse(
                    ok=True,
                    status_code=resp.status_code,
                    data=data,
                    backend_name=self.name,
                    latency_ms=latency,
                )
        except httpx.TimeoutException:
            latency = (time.monotonic() - t0) * 1000
            logger.warning(
                "Backend '%s' timed out after %.0fms", self.name, latency,
            )
            return BackendResponse(
                ok=False,
                status_code=0,
                backend_name=self.name,
                latency_ms=latency,
                error=f"Error: timed out after {self.timeout}s",
            )
        except httpx.HTTPError as e:
            latency = (time.monotonic() - t0) * 1000
            logger.warning("Backend '%s' failed: %s", self.name, e)
            return BackendResponse(
                ok=False,
                status_code=0,
                backend_name=self.name,
                latency_ms=latency,
                error=f"Error: {e}",
            )
