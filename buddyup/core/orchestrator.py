"""
Match orchestrator — the state machine that turns a create_match
invocation into a committed conversation and a match card.

REQUESTED -> SYNTHESIZING -> COMMITTED -> NOTIFIED
      |            |
      +------------+--> ABORTED

Each run is one-shot: the orchestrator keeps no per-attempt state once
``run`` returns.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from .bus import EventBus
from .errors import MatchError, RegistryError
from .events import match_committed
from .models import (
    Conversation,
    ConversationKind,
    MatchAttempt,
    MatchPayload,
    MatchRequest,
    MatchState,
    Message,
    MessageKind,
    MonotonicIdGenerator,
    SenderRole,
    generate_id,
    next_message_id,
)
from .registry import ConversationRegistry

logger = logging.getLogger(__name__)

# ============ State Machine ============

VALID_TRANSITIONS: dict[MatchState, set[MatchState]] = {
    MatchState.REQUESTED: {MatchState.SYNTHESIZING, MatchState.ABORTED},
    MatchState.SYNTHESIZING: {MatchState.COMMITTED, MatchState.ABORTED},
    MatchState.COMMITTED: {MatchState.NOTIFIED},
    MatchState.NOTIFIED: set(),  # Terminal
    MatchState.ABORTED: set(),   # Terminal
}

DEFAULT_SYNTHESIS_DELAY_S = 1.5

AVATAR_URL = "https://api.dicebear.com/7.x/{style}/svg?seed={seed}"


# ============ Deterministic match content ============

def match_name(kind: ConversationKind, activity: str) -> str:
    if kind == ConversationKind.DIRECT:
        return f"Partner for {activity}"
    return f"{activity} Squad"


def match_avatar(kind: ConversationKind, seed: str) -> str:
    style = "avataaars" if kind == ConversationKind.DIRECT else "identicon"
    return AVATAR_URL.format(style=style, seed=seed)


def opening_message(kind: ConversationKind, activity: str) -> Message:
    """Counterpart greeting for direct matches, join notice for groups."""
    if kind == ConversationKind.DIRECT:
        return Message(
            message_id=next_message_id(),
            sender=SenderRole.COUNTERPART,
            body=f"Hey! I saw you're interested in {activity}. Let's chat!",
        )
    return Message(
        message_id=next_message_id(),
        sender=SenderRole.SYSTEM,
        body=f"You joined the {activity} Squad. Say hello!",
        kind=MessageKind.SYSTEM_NOTICE,
    )


class MatchOrchestrator:
    """
    Drives one MatchAttempt per invocation.

    The only write it makes outside the registry is the MatchCommitted
    event; the assistant session subscribes to it and renders the card.
    """

    def __init__(
        self,
        registry: ConversationRegistry,
        event_bus: EventBus,
        synthesis_delay_s: float = DEFAULT_SYNTHESIS_DELAY_S,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._registry = registry
        self._event_bus = event_bus
        self._synthesis_delay_s = synthesis_delay_s
        self._new_id = id_factory or MonotonicIdGenerator("match")

    # ============ State Transition ============

    @staticmethod
    def _transition(attempt: MatchAttempt, new_state: MatchState) -> None:
        """Raises MatchError if the transition is not valid."""
        current = attempt.state
        if new_state not in VALID_TRANSITIONS.get(current, set()):
            raise MatchError(
                f"Invalid state transition: {current.value} -> {new_state.value}"
            )
        logger.info(
            "Match %s: %s -> %s", attempt.attempt_id, current.value, new_state.value,
        )
        attempt.state = new_state

    # ============ Main Flow ============

    async def run(self, request: MatchRequest) -> MatchAttempt:
        """
        Synthesize, commit and announce a match.

        Raises MatchError if the registry rejects the new conversation;
        in that case nothing is announced.
        """
        attempt = MatchAttempt(attempt_id=generate_id("attempt"), request=request)
        t0 = time.monotonic()

        self._transition(attempt, MatchState.SYNTHESIZING)
        if self._synthesis_delay_s > 0:
            await asyncio.sleep(self._synthesis_delay_s)

        conversation = self._build_conversation(request)
        try:
            self._registry.create(conversation)
        except RegistryError as exc:
            self._transition(attempt, MatchState.ABORTED)
            attempt.error = str(exc)
            attempt.completed_at = datetime.now(timezone.utc)
            logger.warning("Match %s aborted: %s", attempt.attempt_id, exc)
            raise MatchError(f"Match creation failed: {exc}") from exc

        attempt.conversation_id = conversation.conversation_id
        self._transition(attempt, MatchState.COMMITTED)

        payload = MatchPayload(
            conversation_id=conversation.conversation_id,
            name=conversation.name,
            avatar=conversation.avatar,
            kind=conversation.kind,
            description=request.description,
        )
        attempt.payload = payload
        await self._event_bus.publish(
            match_committed(conversation.conversation_id, payload, attempt.attempt_id)
        )
        self._transition(attempt, MatchState.NOTIFIED)
        attempt.completed_at = datetime.now(timezone.utc)

        logger.info(
            "Match %s complete: %s %r in %.0fms",
            attempt.attempt_id,
            request.kind.value,
            conversation.name,
            (time.monotonic() - t0) * 1000,
        )
        return attempt

    def _build_conversation(self, request: MatchRequest) -> Conversation:
        conversation_id = self._new_id()
        # Direct matches open on an unread greeting; group matches were
        # joined by the user and start read.
        unread = 1 if request.kind == ConversationKind.DIRECT else 0
        return Conversation(
            conversation_id=conversation_id,
            kind=request.kind,
            name=match_name(request.kind, request.activity),
            avatar=match_avatar(request.kind, conversation_id),
            participants=[],
            messages=[opening_message(request.kind, request.activity)],
            unread=unread,
        )
