"""
ModelGateway — the boundary between the assistant session and the
external language model.

One user turn is one ``run_turn`` call:

1. Translate the session history into (role, text) turns.
2. Call the model with the single declared capability, ``create_match``.
3. Interpret the reply as a TextReply or a CapabilityInvocation.
4. On invocation: validate arguments, hand them to the MatchHandler, then
   acknowledge the call so the model can produce a follow-up line.

Every failure inside a turn ends in exactly one apology message. Nothing
propagates to the caller except SessionBusyError, which is raised before
the turn starts.
"""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Union

from .bus import EventBus
from .errors import ConfigError, GatewayError, InvocationError
from .events import ChatEvent, assistant_message, assistant_thinking
from .models import ConversationKind, MatchRequest, Message, MessageKind, SenderRole
from .protocols import MatchHandler, ModelClient
from .session import AssistantSession

logger = logging.getLogger(__name__)

# ============ Prompt + Capability ============

SYSTEM_PROMPT = (
    "You are 'BuddyUp', a friendly, enthusiastic social connectivity assistant. "
    "Your job is to help the user find friends or activities (aka 'Da-zi'). "
    "Be conversational. If the user wants to find someone or something, ask "
    "clarifying questions if needed, or use the 'create_match' tool to "
    "simulate finding a match."
)

CREATE_MATCH = "create_match"
MATCH_ARGUMENTS = ("kind", "activity", "description")

CREATE_MATCH_TOOL: dict[str, Any] = {
    "name": CREATE_MATCH,
    "description": (
        "Find a social match for the user. Use this when the user explicitly "
        "expresses interest in finding a person or a group activity."
    ),
    "input_schema": {
        "type": "object",
        "properties": {
            "kind": {
                "type": "string",
                "enum": [k.value for k in ConversationKind],
                "description": "The type of match: direct for a single partner, group for activities.",
            },
            "activity": {
                "type": "string",
                "description": "The activity name (e.g., Tennis, Movie, Coding).",
            },
            "description": {
                "type": "string",
                "description": "A short description of the matched entity.",
            },
        },
        "required": list(MATCH_ARGUMENTS),
    },
}

FAILURE_MESSAGE = (
    "I'm having trouble connecting to the BuddyUp network right now. Please try again."
)

TOOL_SUCCESS_RESULT = {
    "result": "success",
    "message": "Match created successfully and added to database.",
}

MATCH_CARD_SUMMARY = "[System: I have created a match for {description}. The user can see it.]"

DEFAULT_MODEL_TIMEOUT_S = 30.0

ROLE_USER = "user"
ROLE_MODEL = "model"


def validate_capability(declaration: dict[str, Any]) -> None:
    """
    Check the create_match declaration before it is ever sent.

    Raises ConfigError on any deviation from the expected contract.
    """
    if declaration.get("name") != CREATE_MATCH:
        raise ConfigError(f"Capability must be named {CREATE_MATCH!r}")
    if not declaration.get("description"):
        raise ConfigError("Capability needs a description")

    schema = declaration.get("input_schema")
    if not isinstance(schema, dict) or schema.get("type") != "object":
        raise ConfigError("Capability input_schema must be an object schema")

    properties = schema.get("properties") or {}
    missing = [arg for arg in MATCH_ARGUMENTS if arg not in properties]
    if missing:
        raise ConfigError(f"Capability schema missing properties: {missing}")
    for arg in MATCH_ARGUMENTS:
        if properties[arg].get("type") != "string":
            raise ConfigError(f"Capability argument {arg!r} must be a string")

    if set(schema.get("required") or []) != set(MATCH_ARGUMENTS):
        raise ConfigError(f"Capability must require exactly {list(MATCH_ARGUMENTS)}")

    kinds = set(properties["kind"].get("enum") or [])
    if kinds != {k.value for k in ConversationKind}:
        raise ConfigError(f"Capability 'kind' enum must be {[k.value for k in ConversationKind]}")


# ============ Turns + Replies ============

@dataclass(frozen=True)
class Turn:
    role: str  # ROLE_USER | ROLE_MODEL
    text: str


@dataclass(frozen=True)
class TextReply:
    text: str


@dataclass(frozen=True)
class CapabilityInvocation:
    """
    The first capability call in a model reply.

    Only one call per reply is honored; any further calls are dropped
    when the reply is interpreted.
    """
    name: str
    arguments: dict[str, Any]
    invocation_id: str = ""
    text: Optional[str] = None
    ignored_calls: int = 0


ModelReply = Union[TextReply, CapabilityInvocation]


def build_history(messages: list[Message]) -> list[Turn]:
    """Session log -> (role, text) turns. Match cards become a text summary."""
    turns = []
    for message in messages:
        text = message.body
        if message.kind == MessageKind.MATCH_CARD and message.match is not None:
            text = MATCH_CARD_SUMMARY.format(description=message.match.description)
        role = ROLE_USER if message.sender == SenderRole.SELF else ROLE_MODEL
        turns.append(Turn(role=role, text=text))
    return turns


def to_wire(turns: list[Turn]) -> list[dict[str, Any]]:
    """
    Turns -> Anthropic messages.

    ``model`` maps to ``assistant``. Empty turns and leading model turns
    (the welcome) are dropped, and consecutive same-role turns are merged:
    the API requires alternating roles starting with the user.
    """
    wire: list[dict[str, Any]] = []
    for turn in turns:
        if not turn.text:
            continue
        role = "user" if turn.role == ROLE_USER else "assistant"
        if not wire and role == "assistant":
            continue
        if wire and wire[-1]["role"] == role:
            wire[-1]["content"] = f"{wire[-1]['content']}\n\n{turn.text}"
        else:
            wire.append({"role": role, "content": turn.text})
    return wire


def interpret_response(response: Any) -> ModelReply:
    """Model client response dict -> tagged reply. Raises GatewayError if unusable."""
    if not isinstance(response, dict):
        raise GatewayError(f"Malformed model response: {type(response).__name__}")

    content = response.get("content")
    tool_calls = response.get("tool_calls")

    if tool_calls:
        if not isinstance(tool_calls, list):
            raise GatewayError("Malformed model response: tool_calls is not a list")
        first = tool_calls[0]
        if not isinstance(first, dict) or not first.get("name"):
            raise GatewayError("Malformed model response: tool call without a name")
        arguments = first.get("arguments")
        if not isinstance(arguments, dict):
            arguments = {}
        if len(tool_calls) > 1:
            logger.info(
                "Model returned %d tool calls; honoring the first only", len(tool_calls),
            )
        return CapabilityInvocation(
            name=first["name"],
            arguments=arguments,
            invocation_id=first.get("id") or "",
            text=content,
            ignored_calls=len(tool_calls) - 1,
        )

    if isinstance(content, str) and content.strip():
        return TextReply(text=content)

    raise GatewayError(
        f"Malformed model response: no text and no tool call (stop={response.get('stop_reason')})"
    )


def parse_invocation(invocation: CapabilityInvocation) -> MatchRequest:
    """Validate create_match arguments. Raises InvocationError before any synthesis."""
    if invocation.name != CREATE_MATCH:
        raise InvocationError(f"Unknown capability: {invocation.name}")

    args = invocation.arguments
    for key in MATCH_ARGUMENTS:
        value = args.get(key)
        if not isinstance(value, str) or not value.strip():
            raise InvocationError(f"create_match missing required argument {key!r}")

    try:
        kind = ConversationKind(args["kind"].strip().lower())
    except ValueError as exc:
        raise InvocationError(f"create_match has invalid kind {args['kind']!r}") from exc

    return MatchRequest(
        kind=kind,
        activity=args["activity"].strip(),
        description=args["description"].strip(),
        invocation_id=invocation.invocation_id or None,
    )


# ============ Gateway ============

class ModelGateway:
    """
    Drives user turns against the model.

    At most one turn is in flight per AssistantSession; the session's
    thinking flag is the guard.
    """

    def __init__(
        self,
        model_client: ModelClient,
        match_handler: MatchHandler,
        event_bus: Optional[EventBus] = None,
        timeout_s: float = DEFAULT_MODEL_TIMEOUT_S,
        system_prompt: str = SYSTEM_PROMPT,
        capability: Optional[dict[str, Any]] = None,
    ):
        capability = capability if capability is not None else CREATE_MATCH_TOOL
        validate_capability(capability)
        self._client = model_client
        self._match_handler = match_handler
        self._event_bus = event_bus
        self._timeout_s = timeout_s
        self._system_prompt = system_prompt
        self._tools = [capability]

    @property
    def tools(self) -> list[dict[str, Any]]:
        return list(self._tools)

    async def run_turn(self, session: AssistantSession, text: str) -> None:
        """
        Handle one user message end to end.

        Raises SessionBusyError if a turn is already running; the message
        is not appended in that case.
        """
        session.begin_thinking()
        t0 = time.monotonic()
        try:
            history = build_history(session.messages())
            session.append_user(text)
            await self._publish(assistant_thinking(True))

            try:
                await self._converse(session, history, text)
            except Exception as exc:
                logger.error("Assistant turn failed: %s", exc, exc_info=True)
                await self._append_assistant(session, FAILURE_MESSAGE)
        finally:
            session.end_thinking()
            await self._publish(assistant_thinking(False))
            logger.info("Assistant turn done in %.0fms", (time.monotonic() - t0) * 1000)

    async def _converse(
        self, session: AssistantSession, history: list[Turn], text: str,
    ) -> None:
        messages = to_wire(history + [Turn(ROLE_USER, text)])
        reply = interpret_response(await self._call(messages))

        if isinstance(reply, TextReply):
            await self._append_assistant(session, reply.text)
            return

        request = parse_invocation(reply)
        logger.info(
            "create_match invoked: kind=%s activity=%r", request.kind.value, request.activity,
        )
        await self._match_handler.run(request)

        follow_up = await self._acknowledge(messages, reply)
        if follow_up:
            await self._append_assistant(session, follow_up)

    async def _acknowledge(
        self, messages: list[dict[str, Any]], invocation: CapabilityInvocation,
    ) -> Optional[str]:
        """Report the tool result back and return the model's follow-up text."""
        assistant_blocks: list[dict[str, Any]] = []
        if invocation.text:
            assistant_blocks.append({"type": "text", "text": invocation.text})
        assistant_blocks.append({
            "type": "tool_use",
            "id": invocation.invocation_id,
            "name": invocation.name,
            "input": invocation.arguments,
        })
        messages = messages + [
            {"role": "assistant", "content": assistant_blocks},
            {
                "role": "user",
                "content": [{
                    "type": "tool_result",
                    "tool_use_id": invocation.invocation_id,
                    "content": json.dumps(TOOL_SUCCESS_RESULT),
                }],
            },
        ]
        response = await self._call(messages)
        if not isinstance(response, dict):
            raise GatewayError(f"Malformed follow-up response: {type(response).__name__}")
        content = response.get("content")
        return content if isinstance(content, str) and content.strip() else None

    async def _call(self, messages: list[dict[str, Any]]) -> Any:
        try:
            return await asyncio.wait_for(
                self._client.chat(
                    messages=messages,
                    system_prompt=self._system_prompt,
                    tools=self._tools,
                ),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError as exc:
            raise GatewayError(f"Model call timed out after {self._timeout_s:.0f}s") from exc

    async def _append_assistant(self, session: AssistantSession, text: str) -> None:
        message = session.append_assistant(text)
        await self._publish(assistant_message(message))

    async def _publish(self, event: ChatEvent) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(event)
