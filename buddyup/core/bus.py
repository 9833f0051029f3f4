"""
In-process async event bus.

Decouples publishers (orchestrator, gateway, reply simulator) from
subscribers (assistant session, outbound event pushers). Handlers may be
sync or async; a failing handler is logged and never breaks the publisher.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections import defaultdict
from typing import Awaitable, Callable, Optional, Union

from .events import ChatEvent

logger = logging.getLogger(__name__)

# Handler can be sync or async
EventHandler = Union[Callable[[ChatEvent], Awaitable[None]], Callable[[ChatEvent], None]]


class EventBus:
    """
    Simple async event bus.

    Supports:
    - Subscribing to a specific event type ("match.committed")
    - Wildcard subscriptions ("assistant.*" or "*")
    - A bounded history for late subscribers
    """

    def __init__(self, max_history: int = 1000):
        self._handlers: dict[str, list[EventHandler]] = defaultdict(list)
        self._history: list[ChatEvent] = []
        self._max_history = max_history
        self._lock = asyncio.Lock()

    def subscribe(self, event_type: str, handler: EventHandler) -> None:
        self._handlers[event_type].append(handler)
        logger.debug("Subscribed to %s: %r", event_type, handler)

    def unsubscribe(self, event_type: str, handler: EventHandler) -> None:
        if event_type in self._handlers:
            self._handlers[event_type] = [
                h for h in self._handlers[event_type] if h != handler
            ]

    async def publish(self, event: ChatEvent) -> None:
        """Publish to every matching subscriber, in subscription order."""
        async with self._lock:
            self._history.append(event)
            if len(self._history) > self._max_history:
                self._history = self._history[-self._max_history:]

        event_type = event.event_type.value
        logger.debug("Event published: %s (%s)", event_type, event.event_id)

        handlers_to_call: list[EventHandler] = []
        for pattern, handlers in self._handlers.items():
            if self._matches(pattern, event_type):
                handlers_to_call.extend(handlers)

        # Sequential, not gathered: subscribers that append to a log must
        # observe events in publish order.
        for handler in handlers_to_call:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("Handler for %s failed: %s", event_type, e, exc_info=True)

    @staticmethod
    def _matches(pattern: str, event_type: str) -> bool:
        if pattern == "*":
            return True
        if pattern.endswith(".*"):
            return event_type.startswith(pattern[:-2] + ".")
        return pattern == event_type

    def get_history(
        self,
        event_type: Optional[str] = None,
        limit: int = 100,
    ) -> list[ChatEvent]:
        events = self._history
        if event_type:
            events = [e for e in events if self._matches(event_type, e.event_type.value)]
        return events[-limit:]

    def clear_history(self) -> None:
        self._history.clear()
