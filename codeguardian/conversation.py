"""
Conversation history — one ordered message list per editor session.

Index 0 is always the system message. User turns are followed by a pending
assistant placeholder that is swapped for the real reply once the backend
answers. Outbound requests see a windowed copy (system + most recent
turns); the stored history is never truncated, so the full conversation
stays available for display.

Two guards keep late replies from clobbering newer state:
  - the placeholder must still be the last element and still pending
  - each dispatch gets a sequence number; only the newest may resolve
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

PLACEHOLDER_TEXT = "Loading..."
DEFAULT_WINDOW = 6


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Message:
    """A single chat message. Replaced, never mutated."""
    role: Role
    content: str
    pending: bool = False

    def to_dict(self) -> dict:
        """OpenAI-compatible wire form."""
        return {"role": self.role.value, "content": self.content}


@dataclass(frozen=True)
class PendingExchange:
    """Handle for a placeholder awaiting its reply."""
    index: int
    message: Message
    seq: int


class ConversationSession:
    """Thread-safe message history owned by one editor/chat context."""

    def __init__(self, system_prompt: str):
        self._lock = threading.RLock()
        self._messages: list[Message] = [Message(Role.SYSTEM, system_prompt)]
        self._seq = 0
        self.archive: list[list[Message]] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def messages(self) -> list[Message]:
        """Copy of the current history."""
        with self._lock:
            return list(self._messages)

    @property
    def system(self) -> Message:
        with self._lock:
            return self._messages[0]

    @property
    def seq(self) -> int:
        """Sequence number of the most recent dispatch."""
        with self._lock:
            return self._seq

    def __len__(self) -> int:
        with self._lock:
            return len(self._messages)

    def __getitem__(self, index: int) -> Message:
        with self._lock:
            return self._messages[index]

    def to_dicts(self) -> list[dict]:
        """Wire form of every non-pending message."""
        return [m.to_dict() for m in self.messages if not m.pending]

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def append_user(self, text: str) -> int:
        """Append a user turn, returning its index."""
        with self._lock:
            self._messages.append(Message(Role.USER, text))
            return len(self._messages) - 1

    def append_assistant(self, text: str) -> int:
        """Append a finished assistant turn (used when replaying history)."""
        with self._lock:
            self._messages.append(Message(Role.ASSISTANT, text))
            return len(self._messages) - 1

    def append_placeholder(self) -> PendingExchange:
        """Append a pending assistant entry and bump the dispatch sequence."""
        with self._lock:
            self._seq += 1
            placeholder = Message(Role.ASSISTANT, PLACEHOLDER_TEXT, pending=True)
            self._messages.append(placeholder)
            return PendingExchange(len(self._messages) - 1, placeholder, self._seq)

    def resolve_placeholder(self, text: str, pending: PendingExchange | None = None) -> bool:
        """
        Replace the pending placeholder with `text`.

        Without a handle the trailing placeholder is resolved. Returns False
        (and changes nothing) if the placeholder is no longer the last
        element, is no longer pending, or a newer request has since been
        dispatched.
        """
        with self._lock:
            last = len(self._messages) - 1
            current = self._messages[last]
            if not current.pending or current.role != Role.ASSISTANT:
                logger.debug("resolve_placeholder: no trailing placeholder, dropping reply")
                return False

            if pending is not None:
                if pending.index != last or current is not pending.message:
                    logger.debug(
                        "resolve_placeholder: placeholder #%d moved or was reset, dropping reply",
                        pending.seq,
                    )
                    return False
                if pending.seq != self._seq:
                    logger.debug(
                        "resolve_placeholder: stale reply #%d (latest #%d), dropping",
                        pending.seq, self._seq,
                    )
                    return False

            self._messages[last] = Message(Role.ASSISTANT, text)
            return True

    def reset(self) -> list[Message]:
        """
        Start a new conversation: keep only the system message.
        Returns the discarded tail, which is also archived when non-empty.
        """
        with self._lock:
            tail = self._messages[1:]
            self._messages = self._messages[:1]
            if tail:
                self.archive.append(list(self._messages[:1]) + tail)
            return tail

    # ------------------------------------------------------------------
    # Outbound views
    # ------------------------------------------------------------------

    def snapshot(self) -> "ConversationSession":
        """Detached copy sharing no state with this session."""
        with self._lock:
            copy = ConversationSession(self._messages[0].content)
            copy._messages = list(self._messages)
            copy._seq = self._seq
            return copy

    def windowed(self, cap: int = DEFAULT_WINDOW) -> "ConversationSession":
        """
        System message plus the last cap-1 settled messages.
        Pending placeholders are never sent. Does not touch stored history.
        """
        cap = max(1, cap)
        with self._lock:
            system = self._messages[0]
            settled = [m for m in self._messages[1:] if not m.pending]
            tail = settled[-(cap - 1):] if cap > 1 else []
            window = ConversationSession(system.content)
            window._messages = [system] + tail
            window._seq = self._seq
            return window


def begin(system_prompt: str) -> ConversationSession:
    """Create a session containing only the system message."""
    return ConversationSession(system_prompt)
