"""Tests for MatchOrchestrator."""

from __future__ import annotations

import warnings
from pathlib import Path

import pytest

from buddyup.core.errors import MatchError
from buddyup.core.events import EventType
from buddyup.core.models import (
    ConversationKind,
    MatchAttempt,
    MatchRequest,
    MatchState,
    MessageKind,
    SenderRole,
)
from buddyup.core import orchestrator as orchestrator_module
from buddyup.core.orchestrator import (
    VALID_TRANSITIONS,
    MatchOrchestrator,
    match_name,
)

from ...conftest import make_conversation


@pytest.fixture
def events(bus):
    received = []
    bus.subscribe(EventType.MATCH_COMMITTED.value, received.append)
    return received


@pytest.fixture
def orchestrator(registry, bus):
    return MatchOrchestrator(registry=registry, event_bus=bus, synthesis_delay_s=0)


class TestStateMachine:
    def test_terminal_states_have_no_exits(self):
        assert VALID_TRANSITIONS[MatchState.NOTIFIED] == set()
        assert VALID_TRANSITIONS[MatchState.ABORTED] == set()

    def test_invalid_transition_raises(self):
        attempt = MatchAttempt(
            attempt_id="a1",
            request=MatchRequest(ConversationKind.DIRECT, "Tennis", "d"),
        )
        with pytest.raises(MatchError):
            MatchOrchestrator._transition(attempt, MatchState.COMMITTED)


class TestRun:
    @pytest.mark.asyncio
    async def test_direct_match(self, orchestrator, registry, events):
        attempt = await orchestrator.run(
            MatchRequest(ConversationKind.DIRECT, "Tennis", "A tennis partner nearby"),
        )

        assert attempt.state == MatchState.NOTIFIED
        assert attempt.completed_at is not None
        conversation = registry.get(attempt.conversation_id)
        assert conversation.name == "Partner for Tennis"
        assert "Tennis" in conversation.name
        assert conversation.unread == 1
        [opening] = conversation.messages
        assert opening.sender == SenderRole.COUNTERPART
        assert "Tennis" in opening.body
        assert registry.list()[0].conversation_id == attempt.conversation_id

        [event] = events
        assert event.data["payload"]["conversation_id"] == attempt.conversation_id
        assert event.data["payload"]["description"] == "A tennis partner nearby"

    @pytest.mark.asyncio
    async def test_group_match(self, orchestrator, registry):
        attempt = await orchestrator.run(
            MatchRequest(ConversationKind.GROUP, "Hiking", "Weekend hikers"),
        )
        conversation = registry.get(attempt.conversation_id)
        assert conversation.name == "Hiking Squad"
        assert conversation.unread == 0
        [notice] = conversation.messages
        assert notice.kind == MessageKind.SYSTEM_NOTICE
        assert notice.sender == SenderRole.SYSTEM
        assert "identicon" in conversation.avatar

    @pytest.mark.asyncio
    async def test_id_collision_aborts_without_event(self, registry, bus, events):
        registry.create(make_conversation("taken"))
        orchestrator = MatchOrchestrator(
            registry=registry, event_bus=bus, synthesis_delay_s=0,
            id_factory=lambda: "taken",
        )
        with pytest.raises(MatchError):
            await orchestrator.run(MatchRequest(ConversationKind.DIRECT, "Chess", "d"))
        assert events == []
        assert len(registry) == 1

    @pytest.mark.asyncio
    async def test_ids_are_unique(self, orchestrator, registry):
        ids = set()
        for _ in range(20):
            attempt = await orchestrator.run(MatchRequest(ConversationKind.GROUP, "Run", "d"))
            ids.add(attempt.conversation_id)
        assert len(ids) == 20 == len(registry)


def test_match_name():
    assert match_name(ConversationKind.DIRECT, "Coding") == "Partner for Coding"
    assert match_name(ConversationKind.GROUP, "Movie") == "Movie Squad"


def test_module_source_compiles_without_warnings():
    source = Path(orchestrator_module.__file__).read_text(encoding="utf-8")
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        compile(source, orchestrator_module.__file__, "exec")
