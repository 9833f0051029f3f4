"""
BuddyUpService — the surface the presentation layer talks to.

Everything here is a synchronous state query or mutation except
``send_assistant_message``, which awaits the model and reports completion
through the updated assistant session snapshot.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Union

from buddyup.core.bus import EventBus
from buddyup.core.gateway import ModelGateway
from buddyup.core.models import (
    Conversation,
    ConversationKind,
    ConversationSummary,
    Message,
    Participant,
    SenderRole,
    next_message_id,
)
from buddyup.core.registry import ConversationRegistry, SummaryPredicate, conversation_filter
from buddyup.core.session import AssistantSession
from buddyup.core.simulator import ReplySimulator

logger = logging.getLogger(__name__)


class Tab(str, Enum):
    AI = "ai"
    CHATS = "chats"
    PROFILE = "profile"


class BuddyUpService:
    """
    Owns one user's view of the world: the registry, the assistant
    session, and which conversation / tab is on screen.

    Build it with ServiceBuilder rather than by hand.
    """

    def __init__(
        self,
        registry: ConversationRegistry,
        session: AssistantSession,
        gateway: ModelGateway,
        simulator: ReplySimulator,
        event_bus: EventBus,
        self_participant: Participant,
    ):
        self._registry = registry
        self._session = session
        self._gateway = gateway
        self._simulator = simulator
        self._event_bus = event_bus
        self._self = self_participant
        self._active_id: Optional[str] = None
        self._active_tab = Tab.AI

    # ── Accessors ──

    @property
    def registry(self) -> ConversationRegistry:
        return self._registry

    @property
    def session(self) -> AssistantSession:
        return self._session

    @property
    def simulator(self) -> ReplySimulator:
        return self._simulator

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    @property
    def self_participant(self) -> Participant:
        return self._self

    @property
    def active_conversation_id(self) -> Optional[str]:
        return self._active_id

    @property
    def active_tab(self) -> Tab:
        return self._active_tab

    @property
    def is_thinking(self) -> bool:
        return self._session.thinking

    def is_active(self, conversation_id: str) -> bool:
        return self._active_id == conversation_id

    # ── Assistant thread ──

    async def send_assistant_message(self, text: str) -> list[Message]:
        """
        Send ``text`` to the assistant and wait for the turn to finish.

        Blank input is ignored. Raises SessionBusyError while a previous
        turn is still in flight.
        """
        text = text.strip()
        if text:
            await self._gateway.run_turn(self._session, text)
        return self._session.messages()

    def assistant_messages(self) -> list[Message]:
        return self._session.messages()

    # ── Conversations ──

    def send_conversation_message(self, conversation_id: str, text: str) -> Optional[Message]:
        """
        Append a self message and schedule the counterpart's reply.

        Raises ConversationNotFoundError for unknown ids. Must run inside
        an event loop, which delivers the delayed reply.
        """
        text = text.strip()
        if not text:
            return None
        message = Message(
            message_id=next_message_id(),
            sender=SenderRole.SELF,
            sender_name=self._self.display_name,
            body=text,
        )
        position = self._registry.append_message(
            conversation_id, message, active=self.is_active(conversation_id),
        )
        self._simulator.schedule(conversation_id, message, position)
        return message

    def select_conversation(self, conversation_id: str) -> bool:
        """Open a conversation: it becomes active and its unread resets."""
        if conversation_id not in self._registry:
            logger.warning("select_conversation: %s not found", conversation_id)
            return False
        self._active_id = conversation_id
        self._registry.mark_read(conversation_id)
        return True

    def close_conversation(self) -> None:
        self._active_id = None

    def open_match_from_card(self, conversation_id: str) -> bool:
        """Follow a match card: open the conversation on the chats tab."""
        opened = self.select_conversation(conversation_id)
        if opened:
            self._active_tab = Tab.CHATS
        return opened

    def select_tab(self, tab: Union[Tab, str]) -> Tab:
        self._active_tab = Tab(tab)
        return self._active_tab

    def get_conversation(self, conversation_id: str) -> Conversation:
        return self._registry.get(conversation_id)

    def list_conversations(
        self,
        kind: Optional[Union[ConversationKind, str]] = None,
        query: str = "",
        predicate: Optional[SummaryPredicate] = None,
    ) -> list[ConversationSummary]:
        if predicate is None:
            kind = ConversationKind(kind) if kind is not None else None
            predicate = conversation_filter(kind=kind, query=query)
        return self._registry.list(predicate)

    def get_unread_total(self) -> int:
        return self._registry.total_unread()

    # ── Lifecycle ──

    async def close(self) -> None:
        await self._simulator.close()
