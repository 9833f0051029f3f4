"""
EventPusher implementations — push engine events to the presentation layer.

Provides three implementations:
- WebSocketEventPusher: broadcasts via WebSocket (production)
- NullEventPusher: silently discards (headless / testing)
- LoggingEventPusher: logs events (debugging / CI)
"""

from __future__ import annotations

import logging
from typing import Any

from buddyup.core.events import ASSISTANT_SESSION_ID, ChatEvent, EventType

logger = logging.getLogger(__name__)

ALL_EVENTS_CHANNEL = "events"
ASSISTANT_CHANNEL = "assistant"


def conversation_channel(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


class NullEventPusher:
    """EventPusher that silently discards all events."""

    async def push(self, event: ChatEvent) -> None:
        pass

    async def push_many(self, events: list[ChatEvent]) -> None:
        pass


class LoggingEventPusher:
    """EventPusher that logs events at INFO level."""

    async def push(self, event: ChatEvent) -> None:
        logger.info(
            "Event [%s] %s: %s",
            event.conversation_id,
            event.event_type.value,
            {k: str(v)[:100] for k, v in event.data.items()},
        )

    async def push_many(self, events: list[ChatEvent]) -> None:
        for event in events:
            await self.push(event)


def channel_for(event: ChatEvent) -> str:
    """
    Channel naming: ``assistant`` for the assistant thread (match cards
    included), ``conversation:{id}`` for everything else.
    """
    if (
        event.conversation_id == ASSISTANT_SESSION_ID
        or event.event_type == EventType.MATCH_COMMITTED
    ):
        return ASSISTANT_CHANNEL
    return conversation_channel(event.conversation_id)


class WebSocketEventPusher:
    """
    EventPusher that broadcasts each event twice: on its own channel and on
    the ``events`` firehose channel.
    """

    def __init__(self, ws_manager: Any):
        """
        Args:
            ws_manager: a WebSocketManager (or anything with broadcast_to_channel)
        """
        self._ws_manager = ws_manager

    async def push(self, event: ChatEvent) -> None:
        message = event.to_dict()
        channel = channel_for(event)
        sent = await self._ws_manager.broadcast_to_channel(channel, message)
        sent += await self._ws_manager.broadcast_to_channel(ALL_EVENTS_CHANNEL, message)
        logger.debug(
            "Pushed event %s to %s (%d connections)", event.event_type.value, channel, sent,
        )

    async def push_many(self, events: list[ChatEvent]) -> None:
        for event in events:
            await self.push(event)
