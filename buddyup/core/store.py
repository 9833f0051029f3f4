"""
MessageStore — append-only, per-conversation message logs.

Appends to one conversation are serialized under that conversation's lock;
different conversations never contend. Reads return tuple snapshots, so a
later append never changes a snapshot already handed out.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable

from .errors import ConversationNotFoundError, DuplicateConversationError
from .models import Message

logger = logging.getLogger(__name__)


class _Log:
    __slots__ = ("messages", "lock")

    def __init__(self, messages: Iterable[Message] = ()):
        self.messages: list[Message] = list(messages)
        self.lock = threading.RLock()


class MessageStore:
    """Ordered message logs keyed by conversation id."""

    def __init__(self) -> None:
        self._logs: dict[str, _Log] = {}
        self._lock = threading.Lock()

    def open(self, conversation_id: str, initial: Iterable[Message] = ()) -> None:
        """Register a new, possibly pre-populated, log."""
        with self._lock:
            if conversation_id in self._logs:
                raise DuplicateConversationError(conversation_id)
            self._logs[conversation_id] = _Log(initial)

    def _log(self, conversation_id: str) -> _Log:
        log = self._logs.get(conversation_id)
        if log is None:
            raise ConversationNotFoundError(conversation_id)
        return log

    def lock_for(self, conversation_id: str) -> threading.RLock:
        """The lock that serializes appends to ``conversation_id``."""
        return self._log(conversation_id).lock

    def append(self, conversation_id: str, message: Message) -> int:
        """Append and return the new message's position in the log."""
        log = self._log(conversation_id)
        with log.lock:
            log.messages.append(message)
            return len(log.messages) - 1

    def read_all(self, conversation_id: str) -> tuple[Message, ...]:
        log = self._log(conversation_id)
        with log.lock:
            return tuple(log.messages)

    def count(self, conversation_id: str) -> int:
        log = self._log(conversation_id)
        with log.lock:
            return len(log.messages)

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._logs

    def __len__(self) -> int:
        return len(self._logs)
