"""
Editor-facing wiring: turns editor events into engine calls.

One EditorAssistant per editor instance, one ChatSession per chat panel.
Both are plain objects owned by whoever created the editing context; there
is no process-wide popup or conversation state.

Triggers:
  request_completions(buffer)  explicit completion request
  on_char_typed(buffer)        "//" just typed → fetch a line explanation
  on_tab(buffer)               insert a ready explanation after the "//"
  on_buffer_edited()           cached explanation offsets are now stale
"""

from __future__ import annotations

import functools
import logging
from concurrent.futures import Future
from typing import Callable

from codeguardian.buffer import EditorBuffer
from codeguardian.context_window import CURSOR_MARKER, DEFAULT_AFTER, DEFAULT_BEFORE, extract_window
from codeguardian.conversation import ConversationSession, Message, PendingExchange, Role, begin
from codeguardian.explanations import (
    COMMENT_MARKER,
    DEFAULT_MAX_CHARS,
    ExplanationCache,
    comment_insert_offset,
    explanation_prompt,
    shorten_explanation,
)
from codeguardian.orchestrator import RequestOrchestrator
from codeguardian.parser import ParseMode, extract_suggestions
from codeguardian.request_config import CHAT, COMPLETION, EXPLANATION, from_config
from codeguardian.sanitizer import DEFAULT_STRATEGY, get_strategy, is_redundant, sanitize
from codeguardian.surface import SurfaceController

logger = logging.getLogger(__name__)

COMPLETION_PROMPT = "Suggest code completions for the following context:"
ASSISTANT_PROMPT = "You are a helpful assistant."
ERROR_PREFIX = "Error:"


def _prompt(cfg: dict, mode: str, default: str) -> str:
    return cfg.get("prompts", {}).get(mode) or default


class EditorAssistant:
    """Completion and explanation triggers for a single editor."""

    def __init__(
        self,
        orchestrator: RequestOrchestrator,
        surface: SurfaceController,
        cfg: dict | None = None,
        cache: ExplanationCache | None = None,
    ):
        cfg = cfg or {}
        self.orchestrator = orchestrator
        self.surface = surface
        self.cache = cache or ExplanationCache()

        ctx_cfg = cfg.get("context", {})
        self.before = ctx_cfg.get("before", DEFAULT_BEFORE)
        self.after = ctx_cfg.get("after", DEFAULT_AFTER)
        self.marker = ctx_cfg.get("marker", CURSOR_MARKER)
        self.explain_before = ctx_cfg.get("explain_before", self.before)
        self.explain_after = ctx_cfg.get("explain_after", self.after)

        exp_cfg = cfg.get("explanation", {})
        self.trigger = exp_cfg.get("trigger", COMMENT_MARKER)
        self.max_chars = exp_cfg.get("max_chars", DEFAULT_MAX_CHARS)

        self.strategy = cfg.get("sanitizer", {}).get("strategy", DEFAULT_STRATEGY)
        get_strategy(self.strategy)
        self.surface.strategy = self.strategy

        self.completion_config = from_config(cfg, COMPLETION)
        self.explanation_config = from_config(cfg, EXPLANATION)
        self.completion_prompt = _prompt(cfg, COMPLETION, COMPLETION_PROMPT)
        self.explanation_prompt = _prompt(cfg, EXPLANATION, ASSISTANT_PROMPT)

    # ------------------------------------------------------------------
    # Inline completion
    # ------------------------------------------------------------------

    def request_completions(self, buffer: EditorBuffer) -> Future:
        """Ask for completions at the caret; results go to the surface."""
        context = extract_window(buffer.text, buffer.caret, self.before, self.after, self.marker)
        messages = [
            Message(Role.SYSTEM, self.completion_prompt),
            Message(Role.USER, context),
        ]
        callback = functools.partial(self._on_completion, buffer.before_caret)
        return self.orchestrator.ask(messages, self.completion_config, callback)

    def suggestions_for(self, code: str, reply: str) -> list[str]:
        """Parse a reply in inline mode and sanitize each block against `code`."""
        result = []
        for candidate in extract_suggestions(reply, ParseMode.INLINE):
            cleaned = sanitize(code, candidate, self.strategy)
            if not is_redundant(cleaned):
                result.append(cleaned)
        return result

    def _on_completion(self, code: str, reply: str):
        if reply.startswith(ERROR_PREFIX):
            logger.warning("Completion request failed: %s", reply)
            return
        suggestions = self.suggestions_for(code, reply)
        if not suggestions:
            logger.info("No valid suggestions found")
            return
        self.surface.present(suggestions)

    # ------------------------------------------------------------------
    # Comment explanations
    # ------------------------------------------------------------------

    def on_char_typed(self, buffer: EditorBuffer) -> Future | None:
        """Call after each typed character; fires on the comment marker."""
        if not buffer.before_caret.endswith(self.trigger):
            return None
        return self.request_explanation(buffer)

    def request_explanation(self, buffer: EditorBuffer) -> Future:
        offset = buffer.caret
        context = extract_window(
            buffer.text, offset, self.explain_before, self.explain_after, self.marker
        )
        messages = [
            Message(Role.SYSTEM, self.explanation_prompt),
            Message(Role.USER, explanation_prompt(context, buffer.current_line)),
        ]
        callback = functools.partial(self._on_explanation, offset)
        return self.orchestrator.ask(messages, self.explanation_config, callback)

    def _on_explanation(self, offset: int, reply: str):
        if reply.startswith(ERROR_PREFIX):
            logger.warning("Explanation request failed: %s", reply)
            return
        short = shorten_explanation(reply, self.max_chars)
        if short:
            self.cache.put(offset, short)

    def on_tab(self, buffer: EditorBuffer) -> bool:
        """
        Insert the cached explanation for the caret, if one is ready.
        Returns True when the key was consumed.
        """
        offset = buffer.caret
        explanation = self.cache.get(offset)
        if explanation is None or not explanation.strip():
            return False

        insert_at = comment_insert_offset(buffer.text, offset, self.trigger)
        if insert_at is None:
            return False

        fragment = " " + explanation.strip()
        buffer.insert(insert_at, fragment)
        buffer.move_caret(insert_at + len(fragment))
        self.cache.clear(offset)
        return True

    def on_buffer_edited(self):
        """Cached offsets do not follow edits, so drop them all."""
        if len(self.cache):
            logger.debug("Buffer edited; dropping %d cached explanations", len(self.cache))
        self.cache.clear_all()


class ChatSession:
    """A chat panel conversation backed by a ConversationSession."""

    def __init__(
        self,
        orchestrator: RequestOrchestrator,
        cfg: dict | None = None,
        on_update: Callable[[], None] | None = None,
    ):
        cfg = cfg or {}
        self.orchestrator = orchestrator
        self.config = from_config(cfg, CHAT)
        self.session: ConversationSession = begin(_prompt(cfg, CHAT, ASSISTANT_PROMPT))
        self.on_update = on_update

    def send(self, text: str) -> PendingExchange | None:
        """Queue a user message; the placeholder resolves in the background."""
        text = text.strip()
        if not text:
            return None
        return self.orchestrator.submit(self.session, text, self.config, self._on_reply)

    def _on_reply(self, reply: str):
        if self.on_update is not None:
            self.on_update()

    def new_conversation(self) -> list[Message]:
        """Archive the current exchange and start over from the system prompt."""
        return self.session.reset()

    @property
    def archive(self) -> list[list[Message]]:
        return self.session.archive

    def transcript(self) -> list[Message]:
        """Everything after the system message, placeholders included."""
        return self.session.messages[1:]

    def code_blocks(self, index: int) -> list[str]:
        """Copyable blocks from transcript entry `index` (assistant replies only)."""
        message = self.transcript()[index]
        if message.role != Role.ASSISTANT or message.pending:
            return []
        return extract_suggestions(message.content, ParseMode.CHAT)
