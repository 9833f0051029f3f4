"""
Shared test fixtures for all BuddyUp tests.

Provides a scripted model client, a recording event pusher, and
factories for conversations and fully wired services.
"""

from __future__ import annotations

from typing import Any, Optional

import pytest

from buddyup.builder import ServiceBuilder
from buddyup.core.bus import EventBus
from buddyup.core.events import ChatEvent, EventType
from buddyup.core.models import (
    Conversation,
    ConversationKind,
    Message,
    SenderRole,
    next_message_id,
)
from buddyup.core.registry import ConversationRegistry
from buddyup.core.session import AssistantSession
from buddyup.infra.config import BuddyUpConfig
from buddyup.service import BuddyUpService


# ============ Mock Model Client ============

class MockModelClient:
    """
    Scripted ModelClient.

    Responses are returned in the order they were added; once the script
    runs out, a plain text reply is returned. Every call is recorded.
    """

    DEFAULT_TEXT = "Sounds fun! Tell me more."

    def __init__(self):
        self._responses: list[Any] = []
        self.calls: list[dict[str, Any]] = []

    def add_response(self, response: Any) -> None:
        """Queue a raw response dict, or an exception instance to raise."""
        self._responses.append(response)

    def add_text(self, text: str) -> None:
        self.add_response({"content": text, "tool_calls": None, "stop_reason": "end_turn"})

    def add_tool_call(
        self,
        arguments: dict[str, Any],
        name: str = "create_match",
        call_id: str = "toolu_1",
        text: Optional[str] = None,
    ) -> None:
        self.add_response({
            "content": text,
            "tool_calls": [{"name": name, "arguments": arguments, "id": call_id}],
            "stop_reason": "tool_use",
        })

    def add_error(self, error: Exception) -> None:
        self.add_response(error)

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def chat(
        self,
        messages: list[dict[str, Any]],
        system_prompt: Optional[str] = None,
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        self.calls.append({
            "messages": messages,
            "system_prompt": system_prompt,
            "tools": tools,
        })
        if self._responses:
            response = self._responses.pop(0)
            if isinstance(response, Exception):
                raise response
            return response
        return {"content": self.DEFAULT_TEXT, "tool_calls": None, "stop_reason": "end_turn"}


# ============ Mock Event Pusher ============

class MockEventPusher:
    """Collects pushed events for test assertions."""

    def __init__(self):
        self.events: list[ChatEvent] = []

    async def push(self, event: ChatEvent) -> None:
        self.events.append(event)

    async def push_many(self, events: list[ChatEvent]) -> None:
        self.events.extend(events)

    def get_events_by_type(self, event_type: EventType) -> list[ChatEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def reset(self) -> None:
        self.events.clear()


# ============ Factories ============

def make_message(
    body: str = "hello",
    sender: SenderRole = SenderRole.COUNTERPART,
    sender_name: Optional[str] = None,
) -> Message:
    return Message(
        message_id=next_message_id(),
        sender=sender,
        body=body,
        sender_name=sender_name,
    )


def make_conversation(
    conversation_id: str = "c1",
    kind: ConversationKind = ConversationKind.DIRECT,
    name: str = "Test Chat",
    messages: Optional[list[Message]] = None,
    unread: int = 0,
) -> Conversation:
    return Conversation(
        conversation_id=conversation_id,
        kind=kind,
        name=name,
        messages=list(messages or []),
        unread=unread,
    )


def build_service(
    model: MockModelClient,
    pusher: Optional[MockEventPusher] = None,
    seed: bool = True,
    reply_delay: float = 0.0,
) -> BuddyUpService:
    builder = (
        ServiceBuilder(BuddyUpConfig(anthropic_api_key=""))
        .with_model_client(model)
        .synthesis_delay(0)
        .reply_delay(reply_delay)
        .seed_demo_data(seed)
    )
    if pusher is not None:
        builder.with_event_pusher(pusher)
    return builder.build()


# ============ Fixtures ============

@pytest.fixture
def mock_model() -> MockModelClient:
    return MockModelClient()


@pytest.fixture
def mock_pusher() -> MockEventPusher:
    return MockEventPusher()


@pytest.fixture
def bus() -> EventBus:
    return EventBus()


@pytest.fixture
def registry() -> ConversationRegistry:
    return ConversationRegistry()


@pytest.fixture
def session() -> AssistantSession:
    return AssistantSession.with_welcome("Alex")


@pytest.fixture
def service(mock_model: MockModelClient, mock_pusher: MockEventPusher) -> BuddyUpService:
    return build_service(mock_model, mock_pusher)
