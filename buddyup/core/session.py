"""
AssistantSession — the user <-> model thread.

A plain append-only log, separate from the conversation registry and never
listed with the other conversations. It has no unread semantics; instead it
carries the "thinking" flag that guards against overlapping model calls.
"""

from __future__ import annotations

import logging
import threading
from typing import Iterable, Optional

from .errors import SessionBusyError
from .events import ChatEvent
from .models import (
    MatchPayload,
    Message,
    MessageKind,
    SenderRole,
    next_message_id,
)

logger = logging.getLogger(__name__)

WELCOME_TEMPLATE = (
    "Hi {name}! Welcome to BuddyUp! I'm your AI Wingman. Tell me what activity "
    "you're looking to do? Maybe find a tennis partner or a hiking group?"
)


class AssistantSession:
    """
    The distinguished assistant conversation.

    ``append_user``, ``append_assistant`` and ``append_match_card`` are the
    only mutators. Match cards normally arrive through
    ``on_match_committed``, subscribed to the event bus.
    """

    def __init__(self, messages: Iterable[Message] = ()):
        self._messages: list[Message] = list(messages)
        self._lock = threading.Lock()
        self._thinking = False

    # ── Mutators ──

    def append_user(self, text: str) -> Message:
        return self._append(Message(
            message_id=next_message_id(),
            sender=SenderRole.SELF,
            body=text,
        ))

    def append_assistant(self, text: str) -> Message:
        return self._append(Message(
            message_id=next_message_id(),
            sender=SenderRole.ASSISTANT,
            body=text,
        ))

    def append_match_card(self, payload: MatchPayload) -> Message:
        message = self._append(Message(
            message_id=next_message_id(),
            sender=SenderRole.ASSISTANT,
            body="",
            kind=MessageKind.MATCH_CARD,
            match=payload,
        ))
        logger.info(
            "Match card delivered: %s (%s)", payload.conversation_id, payload.name,
        )
        return message

    def _append(self, message: Message) -> Message:
        with self._lock:
            self._messages.append(message)
        return message

    # ── Event subscriber ──

    def on_match_committed(self, event: ChatEvent) -> None:
        """EventBus handler for ``match.committed``."""
        self.append_match_card(MatchPayload.from_dict(event.data["payload"]))

    # ── Thinking flag ──

    @property
    def thinking(self) -> bool:
        return self._thinking

    def begin_thinking(self) -> None:
        """Claim the session for one model call. Rejects, never queues."""
        with self._lock:
            if self._thinking:
                raise SessionBusyError("Assistant is still replying to the previous message")
            self._thinking = True

    def end_thinking(self) -> None:
        with self._lock:
            self._thinking = False

    # ── Queries ──

    def messages(self) -> list[Message]:
        with self._lock:
            return list(self._messages)

    def last_message(self) -> Optional[Message]:
        with self._lock:
            return self._messages[-1] if self._messages else None

    def __len__(self) -> int:
        return len(self._messages)

    @classmethod
    def with_welcome(cls, user_name: str = "Alex") -> AssistantSession:
        return cls([
            Message(
                message_id="welcome",
                sender=SenderRole.ASSISTANT,
                body=WELCOME_TEMPLATE.format(name=user_name),
            ),
        ])
