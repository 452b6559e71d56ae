"""
Response parser — turn model output into suggestion candidates.

Fenced code blocks (```lang ... ```) are the suggestion boundary. What to
do when a reply has no fences depends on who asked:

    ParseMode.INLINE  → nothing; prose must never be inserted as code
    ParseMode.CHAT    → the whole reply is one suggestion

An unterminated final fence runs to the end of the text instead of being
dropped. Malformed bodies are logged and produce an empty list.
"""

from __future__ import annotations

import json
import logging
import re
from enum import Enum

logger = logging.getLogger(__name__)

# A fence opens only when the rest of its line is an optional language tag.
# The body runs to the next fence or, if never closed, to the end of text.
_FENCE = re.compile(r"```[\w.+#-]*[ \t]*\r?\n(.*?)(?:```|\Z)", re.DOTALL)


class ParseMode(str, Enum):
    INLINE = "inline"
    CHAT = "chat"


def extract_suggestions(content: str, mode: ParseMode) -> list[str]:
    """Return the fenced blocks of `content` in order of appearance."""
    mode = ParseMode(mode)
    if not content:
        return []

    blocks = [m.group(1).strip() for m in _FENCE.finditer(content)]
    blocks = [b for b in blocks if b]
    if blocks:
        return blocks

    if mode is ParseMode.CHAT:
        text = content.strip()
        return [text] if text else []
    logger.debug("No code blocks found in inline response (%d chars)", len(content))
    return []


def response_content(data: dict) -> str:
    """Extract choices[0].message.content, ignoring any unknown fields."""
    if not isinstance(data, dict):
        logger.warning("Response body is %s, expected an object", type(data).__name__)
        return ""
    choices = data.get("choices") or []
    if not isinstance(choices, list) or not choices:
        logger.warning("Response has no choices")
        return ""
    first = choices[0] if isinstance(choices[0], dict) else {}
    message = first.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        logger.warning(
            "Response choice has no message content (finish_reason=%s)",
            first.get("finish_reason"),
        )
        return ""
    return content


def parse_response(body: str | bytes | dict, mode: ParseMode) -> list[str]:
    """Parse a raw chat-completion body into suggestions. Never raises."""
    if isinstance(body, (str, bytes)):
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.warning("Malformed response body: %s", e)
            return []
    else:
        data = body
    return extract_suggestions(response_content(data), mode)
