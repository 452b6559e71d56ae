"""
EditorBuffer — the minimal document model the engine needs.

An editor integration adapts its own document/caret objects to this
shape; the CLI and tests use it directly. It is only touched from the
consumer context, so it carries no locking.
"""

from __future__ import annotations

from dataclasses import dataclass

from codeguardian.context_window import current_line, line_prefix, line_start


@dataclass
class EditorBuffer:
    text: str = ""
    caret: int = 0

    def __post_init__(self):
        self.caret = max(0, min(self.caret, len(self.text)))

    @property
    def before_caret(self) -> str:
        return self.text[:self.caret]

    @property
    def line_prefix(self) -> str:
        return line_prefix(self.text, self.caret)

    @property
    def current_line(self) -> str:
        return current_line(self.text, self.caret)

    @property
    def line_start(self) -> int:
        return line_start(self.text, self.caret)

    def insert(self, offset: int, fragment: str):
        """Insert at `offset`; a caret at or after it shifts right."""
        offset = max(0, min(offset, len(self.text)))
        self.text = self.text[:offset] + fragment + self.text[offset:]
        if self.caret >= offset:
            self.caret += len(fragment)

    def type(self, fragment: str):
        """Insert at the caret, as if typed."""
        self.insert(self.caret, fragment)

    def move_caret(self, offset: int):
        self.caret = max(0, min(offset, len(self.text)))
