"""
Module-boundary Protocol definitions — the contracts between modules.

These Protocols define WHAT each collaborator must do, not HOW.
Any implementation that satisfies the Protocol can be used interchangeably
(the Claude client in production, scripted mocks in tests).
"""

from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable

from .events import ChatEvent
from .models import MatchAttempt, MatchRequest


# ============ Model Client ============

@runtime_checkable
class ModelClient(Protocol):
    """
    External language-model service with tool-use support.

    Messages use the provider wire format: ``{"role": "user"|"assistant",
    "content": str | list[block]}``.
    """

    async def chat(
        self,
        messages: list[dict[str, Any]],
        system_prompt: Optional[str] = None,
        tools: Optional[list[dict[str, Any]]] = None,
    ) -> dict[str, Any]:
        """
        Send a chat request, optionally with tools.

        Response format:
        {
            "content": str | None,
            "tool_calls": [{"name": str, "arguments": dict, "id": str}] | None,
            "stop_reason": str,
        }
        """
        ...


# ============ Match Handler ============

@runtime_checkable
class MatchHandler(Protocol):
    """Turns a validated create_match invocation into a committed conversation."""

    async def run(self, request: MatchRequest) -> MatchAttempt:
        """Run one attempt to completion. Raises MatchError if it aborts."""
        ...


# ============ Event Pusher ============

@runtime_checkable
class EventPusher(Protocol):
    """Pushes engine events to the presentation layer."""

    async def push(self, event: ChatEvent) -> None:
        ...

    async def push_many(self, events: list[ChatEvent]) -> None:
        ...
