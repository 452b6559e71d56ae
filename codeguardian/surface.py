"""
Surface controller — the contract between the engine and whatever shows
suggestions on screen.

The presentation layer implements Surface (a popup, a panel, a terminal
listing). The controller guarantees one live surface per trigger scope:
new results update the visible surface in place instead of opening a
second one.
"""

from __future__ import annotations

import abc
import logging
from typing import Callable

from codeguardian.buffer import EditorBuffer
from codeguardian.sanitizer import DEFAULT_STRATEGY, is_redundant, sanitize

logger = logging.getLogger(__name__)


class Surface(abc.ABC):
    """A single on-screen presentation of suggestions."""

    @property
    @abc.abstractmethod
    def visible(self) -> bool:
        ...

    @abc.abstractmethod
    def show(self, suggestions: list[str]):
        ...

    @abc.abstractmethod
    def update(self, suggestions: list[str]):
        ...

    @abc.abstractmethod
    def close(self):
        ...


class SurfaceController:
    """Create-or-update management of the one active surface."""

    def __init__(
        self,
        factory: Callable[[], Surface],
        strategy: str = DEFAULT_STRATEGY,
    ):
        self._factory = factory
        self.strategy = strategy
        self.surface: Surface | None = None
        self.suggestions: list[str] = []

    @property
    def active(self) -> bool:
        return self.surface is not None and self.surface.visible

    def present(self, suggestions: list[str]):
        """Show `suggestions`, reusing the visible surface if there is one."""
        if not suggestions:
            logger.debug("No suggestions to present")
            return
        self.suggestions = list(suggestions)
        if self.active:
            self.surface.update(self.suggestions)
        else:
            self.surface = self._factory()
            self.surface.show(self.suggestions)

    def dismiss(self):
        if self.surface is not None:
            self.surface.close()
        self.surface = None
        self.suggestions = []

    def apply_selected(self, index: int, buffer: EditorBuffer) -> str | None:
        """
        Insert suggestion `index` at the buffer's current caret.

        The suggestion is sanitized again against the buffer as it is now,
        since the user may have kept typing after it was computed. Returns
        the inserted text, or None if nothing was inserted.
        """
        if not 0 <= index < len(self.suggestions):
            logger.warning("apply_selected: no suggestion at index %d", index)
            return None

        text = sanitize(buffer.before_caret, self.suggestions[index], self.strategy)
        if is_redundant(text):
            logger.info("Suggestion was empty or redundant, not applied")
            self.dismiss()
            return None

        buffer.type(text)
        self.dismiss()
        return text
