"""
Tests for the context window extractor.
Run with: pytest tests/test_context_window.py
"""

import pytest

from codeguardian.context_window import (
    CURSOR_MARKER,
    current_line,
    extract_window,
    line_end,
    line_prefix,
    line_start,
)


def test_small_buffer_keeps_everything():
    """A buffer smaller than both windows is passed through around the marker."""
    out = extract_window("abc def", 3)
    assert out == "abc\n<cursor>\n def"


def test_window_truncates_both_sides():
    """Only the last `before` and first `after` characters survive."""
    text = "a" * 1000 + "b" * 1000
    out = extract_window(text, 1000, before=500, after=200)
    head, marker, tail = out.split("\n")
    assert head == "a" * 500
    assert marker == CURSOR_MARKER
    assert tail == "b" * 200


@pytest.mark.parametrize("size", [0, 1, 10, 700, 5000])
@pytest.mark.parametrize("where", [0.0, 0.25, 0.5, 1.0])
def test_output_length_is_bounded(size, where):
    """Output never exceeds before + after + marker + 2 newlines."""
    text = "x" * size
    offset = int(size * where)
    out = extract_window(text, offset)
    assert len(out) <= 500 + 200 + len(CURSOR_MARKER) + 2


@pytest.mark.parametrize("offset", [-10, -1, 11, 10_000])
def test_out_of_range_offsets_are_clamped(offset):
    """Offsets outside the buffer never raise."""
    out = extract_window("0123456789", offset)
    assert CURSOR_MARKER in out


def test_custom_marker():
    assert extract_window("ab", 1, marker="<|fim|>") == "a\n<|fim|>\nb"


def test_empty_buffer():
    assert extract_window("", 0) == "\n<cursor>\n"


# ---------------------------------------------------------------------------
# Line helpers
# ---------------------------------------------------------------------------

TEXT = "first line\n    second = 2\nthird"


def test_line_prefix_mid_line():
    offset = TEXT.index("= 2")
    assert line_prefix(TEXT, offset) == "    second "


def test_line_prefix_at_line_start():
    offset = TEXT.index("third")
    assert line_prefix(TEXT, offset) == ""


def test_current_line():
    offset = TEXT.index("second")
    assert current_line(TEXT, offset) == "    second = 2"
    assert current_line(TEXT, len(TEXT)) == "third"


def test_line_bounds():
    offset = TEXT.index("second")
    assert TEXT[line_start(TEXT, offset):line_end(TEXT, offset)] == "    second = 2"
