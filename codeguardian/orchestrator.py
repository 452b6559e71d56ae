"""
Request orchestrator — background dispatch of chat-completion calls.

Callers never block: every request runs on a worker thread, which drives
the async backend with asyncio.run() and hands the resulting text back
through `deliver`, the caller's single-consumer context (an editor UI
thread, or ConsumerQueue in tests and the CLI).

Two entry points:
  submit()  chat turn — appends user + placeholder to a session, the
            worker resolves the placeholder when the reply arrives
  ask()     one-shot message list (inline completion, explanations)

Failures never escape: transport errors and non-2xx statuses come back as
"Error: ..." strings, exactly like content. There is no cancellation; a
newer request does not abort an older one, and stale chat replies are
dropped by the session's sequence check.
"""

from __future__ import annotations

import asyncio
import functools
import itertools
import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable

from codeguardian.backends.base import BaseBackend
from codeguardian.conversation import (
    DEFAULT_WINDOW,
    ConversationSession,
    Message,
    PendingExchange,
)
from codeguardian.request_config import RequestConfig
from codeguardian.wiretap import WireLog

logger = logging.getLogger(__name__)

Callback = Callable[[str], None]
Deliver = Callable[[Callable[[], None]], None]


def _call_inline(fn: Callable[[], None]):
    fn()


class ConsumerQueue:
    """
    A single-consumer execution context.

    Any thread may call_soon(); only the owning thread runs the queued
    callables, in FIFO order, via run_pending().
    """

    def __init__(self):
        self._queue: queue.SimpleQueue = queue.SimpleQueue()

    def call_soon(self, fn: Callable[[], None]):
        self._queue.put(fn)

    __call__ = call_soon

    def run_pending(self, timeout: float | None = None) -> int:
        """
        Run everything queued. With a timeout, first wait up to that long
        for at least one item. Returns the number of callables run.
        """
        ran = 0
        if timeout is not None:
            try:
                fn = self._queue.get(timeout=timeout)
            except queue.Empty:
                return 0
            fn()
            ran += 1
        while True:
            try:
                fn = self._queue.get_nowait()
            except queue.Empty:
                return ran
            fn()
            ran += 1


class RequestOrchestrator:
    """Dispatch requests on a worker pool and deliver replies to one consumer."""

    def __init__(
        self,
        backend: BaseBackend,
        history_cap: int = DEFAULT_WINDOW,
        max_workers: int = 8,
        deliver: Deliver | None = None,
        wire: WireLog | None = None,
    ):
        self.backend = backend
        self.history_cap = history_cap
        self.wire = wire
        self._deliver = deliver or _call_inline
        self._pool = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="codeguardian-worker"
        )
        self._ids = itertools.count(1)
        self._ids_lock = threading.Lock()

    @classmethod
    def from_config(
        cls,
        cfg: dict,
        backend: BaseBackend,
        deliver: Deliver | None = None,
    ) -> "RequestOrchestrator":
        wire = None
        wire_cfg = cfg.get("wiretap", {})
        if wire_cfg.get("enabled", False):
            wire = WireLog(wire_cfg.get("path", "./data/wire.jsonl"))
        return cls(
            backend,
            history_cap=cfg.get("history", {}).get("window", DEFAULT_WINDOW),
            max_workers=cfg.get("workers", {}).get("max", 8),
            deliver=deliver,
            wire=wire,
        )

    def _next_id(self) -> int:
        with self._ids_lock:
            return next(self._ids)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def submit(
        self,
        session: ConversationSession,
        text: str,
        config: RequestConfig,
        callback: Callback | None = None,
    ) -> PendingExchange:
        """
        Append a user turn plus placeholder and dispatch in the background.
        The outbound basis is captured now; windowing happens on the worker.
        """
        session.append_user(text)
        snapshot = session.snapshot()
        pending = session.append_placeholder()
        self._pool.submit(self._run_exchange, session, snapshot, pending, config, callback)
        return pending

    def ask(
        self,
        messages: list[Message],
        config: RequestConfig,
        callback: Callback,
    ) -> Future:
        """Dispatch a one-shot message list; callback gets text or an error string."""
        return self._pool.submit(self._run_oneshot, list(messages), config, callback)

    def shutdown(self, wait: bool = True):
        self._pool.shutdown(wait=wait)
        if self.wire:
            self.wire.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.shutdown()
        return False

    # ------------------------------------------------------------------
    # Worker side
    # ------------------------------------------------------------------

    def _run_exchange(
        self,
        session: ConversationSession,
        snapshot: ConversationSession,
        pending: PendingExchange,
        config: RequestConfig,
        callback: Callback | None,
    ):
        window = snapshot.windowed(self.history_cap)
        text = self._call(config.to_payload(window.to_dicts()))
        if not session.resolve_placeholder(text, pending):
            logger.info("Reply for request #%d arrived after a newer request or reset; discarded", pending.seq)
        if callback is not None:
            self._hand_off(callback, text)

    def _run_oneshot(self, messages: list[Message], config: RequestConfig, callback: Callback):
        payload = config.to_payload([m.to_dict() for m in messages if not m.pending])
        self._hand_off(callback, self._call(payload))

    def _call(self, body: dict) -> str:
        """Run the backend call on this worker. Never raises."""
        request_id = self._next_id()
        if self.wire:
            self.wire.log_request(body, request_id)
        logger.debug(
            "Request #%d → %s (%d messages)",
            request_id, body.get("model", ""), len(body.get("messages", [])),
        )
        try:
            response = asyncio.run(self.backend.forward(body))
        except Exception as e:
            logger.exception("Request #%d failed in backend '%s'", request_id, self.backend.name)
            text = f"Error: {e}"
            error = True
        else:
            text = response.text
            error = not response.ok
            logger.debug(
                "Request #%d ← %s in %.0fms (%d chars)",
                request_id, "ok" if response.ok else "error", response.latency_ms, len(text),
            )
        if self.wire:
            self.wire.log("inbound", "assistant", text, body.get("model", ""), request_id, error=error)
        return text

    def _hand_off(self, callback: Callback, text: str):
        self._deliver(functools.partial(_invoke, callback, text))


def _invoke(callback: Callback, text: str):
    try:
        callback(text)
    except Exception:
        logger.exception("Reply callback raised")
