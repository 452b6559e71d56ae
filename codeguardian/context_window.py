"""
Context window extraction around the caret.

The model never sees the whole file: only the last `before` characters
ahead of the caret, a marker line, and the first `after` characters behind
it. Truncation is silent, so callers must not assume full-file visibility.
"""

from __future__ import annotations

DEFAULT_BEFORE = 500
DEFAULT_AFTER = 200
CURSOR_MARKER = "<cursor>"


def _clamp(offset: int, length: int) -> int:
    return max(0, min(offset, length))


def extract_window(
    text: str,
    offset: int,
    before: int = DEFAULT_BEFORE,
    after: int = DEFAULT_AFTER,
    marker: str = CURSOR_MARKER,
) -> str:
    """
    Build the prompt blob for a caret position.

    Output length is at most before + after + len(marker) + 2 no matter how
    large the buffer is. Offsets outside the buffer are clamped.
    """
    offset = _clamp(offset, len(text))
    start = max(0, offset - max(0, before))
    end = min(len(text), offset + max(0, after))
    return f"{text[start:offset]}\n{marker}\n{text[offset:end]}"


def line_start(text: str, offset: int) -> int:
    """Offset of the first character of the line containing `offset`."""
    offset = _clamp(offset, len(text))
    return text.rfind("\n", 0, offset) + 1


def line_end(text: str, offset: int) -> int:
    """Offset just past the last character of the line (newline excluded)."""
    offset = _clamp(offset, len(text))
    end = text.find("\n", offset)
    return len(text) if end < 0 else end


def line_prefix(text: str, offset: int) -> str:
    """Text of the current line up to the caret."""
    offset = _clamp(offset, len(text))
    return text[line_start(text, offset):offset]


def current_line(text: str, offset: int) -> str:
    """Full text of the line containing the caret."""
    return text[line_start(text, offset):line_end(text, offset)]
