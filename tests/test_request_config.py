"""
Tests for RequestConfig presets and payload building.
Run with: pytest tests/test_request_config.py
"""

import pytest

from codeguardian.request_config import CHAT, COMPLETION, EXPLANATION, RequestConfig, from_config


def test_defaults():
    cfg = RequestConfig(model="m")
    assert cfg.max_tokens == 500
    assert cfg.stream is False
    assert cfg.seed is None


def test_completion_preset():
    cfg = RequestConfig.for_mode(COMPLETION, "coder")
    assert cfg.temperature == 0.5
    assert cfg.top_p == 0.95
    assert cfg.presence_penalty == 1.03
    assert cfg.frequency_penalty == 1.0


def test_chat_preset():
    cfg = RequestConfig.for_mode(CHAT, "coder")
    assert cfg.temperature == 0.7
    assert cfg.top_p == 1.0
    assert cfg.presence_penalty == 0.0


def test_overrides_applied():
    cfg = RequestConfig.for_mode(COMPLETION, "coder", {"max_tokens": 1024, "seed": 7})
    assert cfg.max_tokens == 1024
    assert cfg.seed == 7
    assert cfg.model == "coder"


def test_unknown_override_ignored(caplog):
    with caplog.at_level("WARNING"):
        cfg = RequestConfig.for_mode(COMPLETION, "coder", {"best_of": 3})
    assert not hasattr(cfg, "best_of")
    assert "best_of" in caplog.text


def test_stream_cannot_be_enabled():
    cfg = RequestConfig.for_mode(CHAT, "coder", {"stream": True})
    assert cfg.stream is False


def test_model_cannot_be_overridden_from_request_section():
    cfg = RequestConfig.for_mode(CHAT, "coder", {"model": "other"})
    assert cfg.model == "coder"


def test_unknown_mode():
    with pytest.raises(ValueError):
        RequestConfig.for_mode("poetry", "m")


def test_payload_shape():
    cfg = RequestConfig.for_mode(COMPLETION, "coder")
    messages = [{"role": "system", "content": "s"}, {"role": "user", "content": "u"}]
    body = cfg.to_payload(messages)
    assert body == {
        "model": "coder",
        "messages": messages,
        "max_tokens": 500,
        "temperature": 0.5,
        "top_p": 0.95,
        "presence_penalty": 1.03,
        "frequency_penalty": 1.0,
        "seed": None,
        "stream": False,
    }


def test_from_config():
    cfg = {
        "models": {EXPLANATION: "explainer"},
        "request": {EXPLANATION: {"max_tokens": 64}},
    }
    rc = from_config(cfg, EXPLANATION)
    assert rc.model == "explainer"
    assert rc.max_tokens == 64
    assert rc.temperature == 0.5
