"""
Explanation cache — short line explanations waiting to be inserted.

Typing a comment marker ("//") kicks off a background request for a
one-line explanation of the current line. The reply is stored here keyed
by the caret offset at trigger time; a later Tab at the same offset pops
it and inserts it after the marker.

Offsets are raw buffer positions and are not shifted when the buffer is
edited, so an entry is only meaningful until the next edit. A miss on
get() just means "not ready yet". Nothing is ever expired automatically.
"""

from __future__ import annotations

import logging
import threading

logger = logging.getLogger(__name__)

DEFAULT_MAX_CHARS = 80
COMMENT_MARKER = "//"


class ExplanationCache:
    """Thread-safe offset → explanation map. Written by workers, read by the UI."""

    def __init__(self):
        self._entries: dict[int, str] = {}
        self._lock = threading.Lock()

    def put(self, offset: int, explanation: str):
        with self._lock:
            self._entries[offset] = explanation
        logger.debug("Cached explanation at offset %d (%d chars)", offset, len(explanation))

    def get(self, offset: int) -> str | None:
        """Non-destructive read; None when nothing is ready at `offset`."""
        with self._lock:
            return self._entries.get(offset)

    def pop(self, offset: int) -> str | None:
        """Read and remove in one step, so an entry is consumed exactly once."""
        with self._lock:
            return self._entries.pop(offset, None)

    def clear(self, offset: int):
        with self._lock:
            self._entries.pop(offset, None)

    def clear_all(self):
        with self._lock:
            self._entries.clear()

    def __contains__(self, offset: int) -> bool:
        with self._lock:
            return offset in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def explanation_prompt(context: str, line: str) -> str:
    return (
        "I have the following code:\n"
        f"{context}\n"
        "Please give a short explanation for the following line:\n"
        f"{line}\n"
    )


def shorten_explanation(text: str, limit: int = DEFAULT_MAX_CHARS) -> str:
    """Collapse to a single line and cut to `limit` characters."""
    flat = " ".join(text.split())
    return flat[:limit].rstrip()


def comment_insert_offset(text: str, offset: int, marker: str = COMMENT_MARKER) -> int | None:
    """
    Offset just after the last `marker` on the current line before the
    caret, or None if the line has no marker there.
    """
    offset = max(0, min(offset, len(text)))
    start = text.rfind("\n", 0, offset) + 1
    idx = text[start:offset].rfind(marker)
    if idx < 0:
        return None
    return start + idx + len(marker)
