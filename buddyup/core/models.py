"""
Core data models for the conversation engine.

These are the fundamental data structures shared across all modules.
They define WHAT the system works with, not HOW it processes them.
"""

from __future__ import annotations

import threading
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional


# ============ ID Generation ============

def generate_id(prefix: str = "") -> str:
    """Generate a unique ID with optional prefix."""
    uid = uuid.uuid4().hex[:12]
    return f"{prefix}_{uid}" if prefix else uid


class MonotonicIdGenerator:
    """
    Timestamp-derived identifiers that never repeat within a process.

    Values are milliseconds since the epoch, bumped by one whenever two
    calls land in the same millisecond, so ids sort in creation order.
    """

    def __init__(self, prefix: str = ""):
        self._prefix = prefix
        self._last = 0
        self._lock = threading.Lock()

    def next_value(self) -> int:
        with self._lock:
            value = max(time.time_ns() // 1_000_000, self._last + 1)
            self._last = value
            return value

    def __call__(self) -> str:
        value = self.next_value()
        return f"{self._prefix}_{value}" if self._prefix else str(value)


# Process-wide message ids: monotonic, so ids sort in creation order.
next_message_id = MonotonicIdGenerator("msg")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============ Participants ============

@dataclass(frozen=True)
class Participant:
    """A person in the network. Immutable once created."""
    participant_id: str
    display_name: str
    avatar: str = ""
    is_vip: bool = False


# ============ Messages ============

class SenderRole(str, Enum):
    SELF = "self"
    COUNTERPART = "counterpart"
    SYSTEM = "system"
    ASSISTANT = "assistant"


class MessageKind(str, Enum):
    PLAIN = "plain"
    SYSTEM_NOTICE = "system-notice"
    MATCH_CARD = "match-card"


class ConversationKind(str, Enum):
    DIRECT = "direct"
    GROUP = "group"


@dataclass(frozen=True)
class MatchPayload:
    """What a match card shows: a pointer to the committed conversation."""
    conversation_id: str
    name: str
    avatar: str
    kind: ConversationKind
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "name": self.name,
            "avatar": self.avatar,
            "kind": self.kind.value,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MatchPayload:
        return cls(
            conversation_id=data["conversation_id"],
            name=data["name"],
            avatar=data["avatar"],
            kind=ConversationKind(data["kind"]),
            description=data["description"],
        )


@dataclass(frozen=True)
class Message:
    """
    A single immutable message.

    ``match`` is set only for MATCH_CARD messages, and every MATCH_CARD
    carries one.
    """
    message_id: str
    sender: SenderRole
    body: str
    kind: MessageKind = MessageKind.PLAIN
    sender_name: Optional[str] = None
    match: Optional[MatchPayload] = None
    created_at: datetime = field(default_factory=_utcnow)

    def __post_init__(self) -> None:
        if self.kind == MessageKind.MATCH_CARD and self.match is None:
            raise ValueError("match-card message requires a match payload")
        if self.kind != MessageKind.MATCH_CARD and self.match is not None:
            raise ValueError(f"{self.kind.value} message cannot carry a match payload")

    @property
    def is_inbound(self) -> bool:
        return self.sender != SenderRole.SELF

    def to_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "sender": self.sender.value,
            "sender_name": self.sender_name,
            "body": self.body,
            "kind": self.kind.value,
            "match": self.match.to_dict() if self.match else None,
            "created_at": self.created_at.isoformat(),
        }


# ============ Conversations ============

@dataclass
class Conversation:
    """
    A direct or group chat thread.

    ``last_message`` and ``last_time`` mirror the newest message in the
    log; the registry keeps them in sync on every append.
    """
    conversation_id: str
    kind: ConversationKind
    name: str
    avatar: str = ""
    participants: list[Participant] = field(default_factory=list)
    messages: list[Message] = field(default_factory=list)
    last_message: str = ""
    last_time: Optional[datetime] = None
    unread: int = 0
    created_at: datetime = field(default_factory=_utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "kind": self.kind.value,
            "name": self.name,
            "avatar": self.avatar,
            "participants": [
                {
                    "participant_id": p.participant_id,
                    "display_name": p.display_name,
                    "avatar": p.avatar,
                    "is_vip": p.is_vip,
                }
                for p in self.participants
            ],
            "messages": [m.to_dict() for m in self.messages],
            "last_message": self.last_message,
            "last_time": self.last_time.isoformat() if self.last_time else None,
            "unread": self.unread,
        }


@dataclass(frozen=True)
class ConversationSummary:
    """Listing projection of a conversation (no message bodies)."""
    conversation_id: str
    kind: ConversationKind
    name: str
    avatar: str
    last_message: str
    last_time: Optional[datetime]
    unread: int
    message_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "kind": self.kind.value,
            "name": self.name,
            "avatar": self.avatar,
            "last_message": self.last_message,
            "last_time": self.last_time.isoformat() if self.last_time else None,
            "unread": self.unread,
            "message_count": self.message_count,
        }


# ============ Match Attempts ============

class MatchState(str, Enum):
    """
    Lifecycle of one match-creation attempt.

    NOTIFIED and ABORTED are terminal; each attempt is a one-shot run.
    """
    REQUESTED = "requested"          # Validated invocation received
    SYNTHESIZING = "synthesizing"    # Simulated matchmaking latency
    COMMITTED = "committed"          # Conversation inserted into the registry
    NOTIFIED = "notified"            # MatchCommitted published, card delivered
    ABORTED = "aborted"              # Registry insertion failed


@dataclass(frozen=True)
class MatchRequest:
    """Validated arguments of a create_match invocation."""
    kind: ConversationKind
    activity: str
    description: str
    invocation_id: Optional[str] = None


@dataclass
class MatchAttempt:
    """Record of one orchestrator run."""
    attempt_id: str
    request: MatchRequest
    state: MatchState = MatchState.REQUESTED
    conversation_id: Optional[str] = None
    payload: Optional[MatchPayload] = None
    error: Optional[str] = None
    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.state in (MatchState.NOTIFIED, MatchState.ABORTED)
