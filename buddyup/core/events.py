"""
Event definitions — what the engine tells the outside world.

Every state change worth displaying is published as a ChatEvent.
The engine pushes ALL events; the presentation layer decides what to show.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from .models import Message, MatchPayload, generate_id

# Pseudo conversation id for events that belong to the assistant thread.
ASSISTANT_SESSION_ID = "assistant"


class EventType(str, Enum):
    ASSISTANT_THINKING = "assistant.thinking"
    ASSISTANT_MESSAGE = "assistant.message"
    MATCH_COMMITTED = "match.committed"
    CONVERSATION_REPLY = "conversation.reply"


@dataclass
class ChatEvent:
    event_type: EventType
    conversation_id: str
    data: dict[str, Any] = field(default_factory=dict)
    event_id: str = field(default_factory=lambda: generate_id("evt"))
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "event_id": self.event_id,
            "event_type": self.event_type.value,
            "conversation_id": self.conversation_id,
            "timestamp": self.timestamp.isoformat(),
            "data": self.data,
        }


# ============ Factories ============

def assistant_thinking(thinking: bool) -> ChatEvent:
    return ChatEvent(
        event_type=EventType.ASSISTANT_THINKING,
        conversation_id=ASSISTANT_SESSION_ID,
        data={"thinking": thinking},
    )


def assistant_message(message: Message) -> ChatEvent:
    return ChatEvent(
        event_type=EventType.ASSISTANT_MESSAGE,
        conversation_id=ASSISTANT_SESSION_ID,
        data={"message": message.to_dict()},
    )


def match_committed(
    conversation_id: str,
    payload: MatchPayload,
    attempt_id: Optional[str] = None,
) -> ChatEvent:
    """MatchCommitted{conversation_id, payload}: the one cross-thread notification."""
    return ChatEvent(
        event_type=EventType.MATCH_COMMITTED,
        conversation_id=conversation_id,
        data={
            "payload": payload.to_dict(),
            "attempt_id": attempt_id,
        },
    )


def conversation_reply(conversation_id: str, message: Message, unread: int) -> ChatEvent:
    return ChatEvent(
        event_type=EventType.CONVERSATION_REPLY,
        conversation_id=conversation_id,
        data={"message": message.to_dict(), "unread": unread},
    )
