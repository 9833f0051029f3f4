"""Tests for EventBus."""

from __future__ import annotations

import pytest

from buddyup.core.bus import EventBus
from buddyup.core.events import EventType, assistant_thinking, conversation_reply

from ...conftest import make_message


class TestEventBus:
    @pytest.mark.asyncio
    async def test_exact_subscription(self, bus):
        received = []
        bus.subscribe("assistant.thinking", received.append)
        await bus.publish(assistant_thinking(True))
        await bus.publish(conversation_reply("c1", make_message(), 1))
        assert [e.event_type for e in received] == [EventType.ASSISTANT_THINKING]

    @pytest.mark.asyncio
    async def test_wildcards(self, bus):
        everything, assistant_only = [], []
        bus.subscribe("*", everything.append)
        bus.subscribe("assistant.*", assistant_only.append)
        await bus.publish(assistant_thinking(True))
        await bus.publish(conversation_reply("c1", make_message(), 1))
        assert len(everything) == 2
        assert len(assistant_only) == 1

    @pytest.mark.asyncio
    async def test_async_handlers_awaited_in_order(self, bus):
        order = []

        async def first(event):
            order.append("first")

        def second(event):
            order.append("second")

        bus.subscribe("*", first)
        bus.subscribe("*", second)
        await bus.publish(assistant_thinking(False))
        assert order == ["first", "second"]

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_break_publish(self, bus):
        received = []

        def broken(event):
            raise RuntimeError("boom")

        bus.subscribe("*", broken)
        bus.subscribe("*", received.append)
        await bus.publish(assistant_thinking(True))
        assert len(received) == 1

    @pytest.mark.asyncio
    async def test_unsubscribe_and_history(self, bus):
        received = []
        bus.subscribe("*", received.append)
        bus.unsubscribe("*", received.append)
        await bus.publish(assistant_thinking(True))
        assert received == []
        assert len(bus.get_history()) == 1
        assert bus.get_history("conversation.*") == []
        bus.clear_history()
        assert bus.get_history() == []

    @pytest.mark.asyncio
    async def test_history_bounded(self):
        bus = EventBus(max_history=3)
        for _ in range(5):
            await bus.publish(assistant_thinking(True))
        assert len(bus.get_history()) == 3
