"""
Tests for the OpenAI-compatible backend.
Run with: pytest tests/test_backends.py
"""

import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import httpx

from codeguardian.backends import BackendResponse, OpenAICompatibleBackend
from codeguardian.config import ConfigError


def _mock_client(mock_client_cls, resp=None, side_effect=None):
    """Wire a patched httpx.AsyncClient class to return a mock client."""
    mock_client = AsyncMock()
    if side_effect is not None:
        mock_client.post.side_effect = side_effect
    else:
        mock_client.post.return_value = resp
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    mock_client_cls.return_value = mock_client
    return mock_client


# ---------------------------------------------------------------------------
# BackendResponse
# ---------------------------------------------------------------------------

def test_backend_response_ok():
    """BackendResponse reports ok/error correctly."""
    ok = BackendResponse(ok=True, data={"choices": [{"message": {"content": "hi"}}]})
    assert ok.ok
    assert ok.content == "hi"
    assert ok.text == "hi"

    err = BackendResponse(ok=False, error="Error: timed out")
    assert not err.ok
    assert err.content == ""
    assert err.text == "Error: timed out"


def test_backend_response_ignores_unknown_fields():
    data = {
        "id": "x",
        "usage": {"total_tokens": 4},
        "choices": [{"message": {"content": "yo", "refusal": None}, "finish_reason": "stop", "index": 0}],
    }
    assert BackendResponse(ok=True, data=data).content == "yo"


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

def test_backend_init():
    b = OpenAICompatibleBackend(name="local", url="http://localhost:8080/", timeout=30, path="v1/chat/answer")
    assert b.url == "http://localhost:8080"
    assert b.endpoint == "http://localhost:8080/v1/chat/answer"
    assert b.timeout == 30


def test_from_config_requires_key():
    with pytest.raises(ConfigError):
        OpenAICompatibleBackend.from_config({"backend": {"url": "http://fake", "api_key": ""}})


def test_from_config_dev_mode_without_key():
    b = OpenAICompatibleBackend.from_config(
        {"backend": {"url": "http://fake", "api_key": "", "dev_mode": True}}
    )
    assert b.api_key == ""
    assert "Authorization" not in b._headers()


def test_from_config_with_key():
    b = OpenAICompatibleBackend.from_config(
        {"backend": {"name": "hosted", "url": "http://fake", "api_key": "sk-x", "timeout": 5}}
    )
    assert b.name == "hosted"
    assert b.timeout == 5
    assert b._headers()["Authorization"] == "Bearer sk-x"


# ---------------------------------------------------------------------------
# forward
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_forward_success():
    """Backend posts the body with bearer auth and returns parsed data."""
    b = OpenAICompatibleBackend(name="test", url="http://fake:8080", api_key="sk-test")

    mock_resp = MagicMock()
    mock_resp.status_code = 200
    mock_resp.json.return_value = {"choices": [{"message": {"content": "hello"}}]}

    with patch("codeguardian.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        client = _mock_client(mock_client_cls, resp=mock_resp)
        result = await b.forward({"model": "coder", "messages": []})

    assert result.ok
    assert result.content == "hello"
    assert result.backend_name == "test"
    url = client.post.call_args.args[0]
    kwargs = client.post.call_args.kwargs
    assert url == "http://fake:8080/v1/chat/completions"
    assert kwargs["json"] == {"model": "coder", "messages": []}
    assert kwargs["headers"]["Authorization"] == "Bearer sk-test"


@pytest.mark.asyncio
async def test_forward_non_success_status():
    b = OpenAICompatibleBackend(name="test", url="http://fake:8080", api_key="sk-test")

    mock_resp = MagicMock()
    mock_resp.status_code = 401
    mock_resp.reason_phrase = "Unauthorized"
    mock_resp.text = '{"error": "bad key"}'

    with patch("codeguardian.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, resp=mock_resp)
        result = await b.forward({"model": "coder", "messages": []})

    assert not result.ok
    assert result.status_code == 401
    assert result.error == "Error: 401 - Unauthorized"
    assert result.text == "Error: 401 - Unauthorized"


@pytest.mark.asyncio
async def test_forward_timeout():
    b = OpenAICompatibleBackend(name="test", url="http://fake:8080", timeout=1)

    with patch("codeguardian.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, side_effect=httpx.TimeoutException("timed out"))
        result = await b.forward({"model": "coder", "messages": []})

    assert not result.ok
    assert result.error.startswith("Error: timed out")


@pytest.mark.asyncio
async def test_forward_connection_refused():
    b = OpenAICompatibleBackend(name="test", url="http://fake:8080")

    with patch("codeguardian.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, side_effect=httpx.ConnectError("Connection refused"))
        result = await b.forward({"model": "coder", "messages": []})

    assert not result.ok
    assert result.error == "Error: Connection refused"


@pytest.mark.asyncio
async def test_forward_malformed_body_is_empty_content():
    import json

    b = OpenAICompatibleBackend(name="test", url="http://fake:8080")
    mock_resp = MagicMock()
    mock_resp.status_code = 200
    mock_resp.json.side_effect = json.JSONDecodeError("Expecting value", "<html>", 0)

    with patch("codeguardian.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, resp=mock_resp)
        result = await b.forward({"model": "coder", "messages": []})

    assert result.ok
    assert result.content == ""


@pytest.mark.asyncio
async def test_forward_undecodable_body_is_empty_content(caplog):
    b = OpenAICompatibleBackend(name="test", url="http://fake:8080")
    mock_resp = MagicMock()
    mock_resp.status_code = 200
    mock_resp.json.side_effect = UnicodeDecodeError("utf-8", b"\xff\xfe", 0, 1, "invalid start byte")

    with patch("codeguardian.backends.openai_compat.httpx.AsyncClient") as mock_client_cls:
        _mock_client(mock_client_cls, resp=mock_resp)
        with caplog.at_level("WARNING"):
            result = await b.forward({"model": "coder", "messages": []})

    assert result.ok
    assert result.content == ""
    assert "malformed body" in caplog.text
