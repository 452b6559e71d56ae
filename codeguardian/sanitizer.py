"""
Suggestion sanitizer — strip code the user has already typed.

Models love to echo the line you are on (or the last few lines) before
getting to the new part. Two strategies handle the two shapes this takes:

  prefix_duplicate   the first suggestion line starts with the current
                     line's text → drop that line
  line_membership    drop the leading run of suggestion lines that already
                     appear (trimmed) anywhere before the caret; stop at the
                     first new line so later, legitimate repeats survive

line_membership is the default and is idempotent. A blank result means the
suggestion was fully redundant and must not be inserted.
"""

from __future__ import annotations

import logging
from typing import Callable

logger = logging.getLogger(__name__)

PREFIX_DUPLICATE = "prefix_duplicate"
LINE_MEMBERSHIP = "line_membership"
DEFAULT_STRATEGY = LINE_MEMBERSHIP


def _current_line(code: str) -> str:
    return code.rsplit("\n", 1)[-1]


def strip_prefix_duplicate(code: str, suggestion: str) -> str:
    """
    Drop the first suggestion line if it restates the current line.
    `code` may be the whole text before the caret or just the line prefix.
    """
    typed = _current_line(code).strip()
    lines = suggestion.split("\n")
    if typed and lines and lines[0].strip().startswith(typed):
        lines = lines[1:]
    return "\n".join(lines).strip()


def strip_leading_known_lines(code: str, suggestion: str) -> str:
    """Drop the leading run of suggestion lines already present in `code`."""
    known = {line.strip() for line in code.split("\n")}
    lines = suggestion.split("\n")

    start = 0
    for line in lines:
        trimmed = line.strip()
        if trimmed and trimmed not in known:
            break
        start += 1
    return "\n".join(lines[start:]).strip()


STRATEGIES: dict[str, Callable[[str, str], str]] = {
    PREFIX_DUPLICATE: strip_prefix_duplicate,
    LINE_MEMBERSHIP: strip_leading_known_lines,
}


def get_strategy(name: str) -> Callable[[str, str], str]:
    try:
        return STRATEGIES[name]
    except KeyError:
        raise ValueError(
            f"Unknown sanitizer strategy {name!r}; expected one of {sorted(STRATEGIES)}"
        ) from None


def sanitize(code: str, suggestion: str, strategy: str = DEFAULT_STRATEGY) -> str:
    """Remove overlap between `suggestion` and the code before the caret."""
    result = get_strategy(strategy)(code, suggestion)
    if not result:
        logger.debug("Suggestion fully redundant under %s", strategy)
    return result


def is_redundant(text: str) -> bool:
    """True when a sanitized suggestion has nothing left to insert."""
    return not text or not text.strip()
