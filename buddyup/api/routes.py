"""
API endpoints for BuddyUp.

Assistant, conversation and navigation calls + 3 WebSocket endpoints.
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Request, WebSocket, WebSocketDisconnect

from buddyup.core.errors import ConversationNotFoundError, SessionBusyError
from buddyup.core.models import ConversationKind, generate_id
from buddyup.infra.event_pusher import (
    ALL_EVENTS_CHANNEL,
    ASSISTANT_CHANNEL,
    conversation_channel,
)
from buddyup.service import BuddyUpService, Tab

from .schemas import (
    AssistantResponse,
    ConversationListResponse,
    NavigationResponse,
    SendMessageRequest,
    SendMessageResponse,
    UnreadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")
ws_router = APIRouter()


def _service(request: Request) -> BuddyUpService:
    return request.app.state.service


def _navigation(service: BuddyUpService) -> NavigationResponse:
    return NavigationResponse(
        active_tab=service.active_tab.value,
        active_conversation_id=service.active_conversation_id,
    )


# ============ Assistant Endpoints ============

@router.get("/assistant", response_model=AssistantResponse)
async def get_assistant(request: Request):
    service = _service(request)
    return AssistantResponse(
        thinking=service.is_thinking,
        messages=[m.to_dict() for m in service.assistant_messages()],
    )


@router.post("/assistant/messages", response_model=AssistantResponse)
async def send_assistant_message(req: SendMessageRequest, request: Request):
    service = _service(request)
    try:
        messages = await service.send_assistant_message(req.text)
    except SessionBusyError as e:
        raise HTTPException(409, str(e))
    return AssistantResponse(
        thinking=service.is_thinking,
        messages=[m.to_dict() for m in messages],
    )


# ============ Conversation Endpoints ============

@router.get("/conversations", response_model=ConversationListResponse)
async def list_conversations(request: Request, kind: Optional[str] = None, q: str = ""):
    service = _service(request)
    try:
        parsed_kind = ConversationKind(kind) if kind else None
    except ValueError:
        raise HTTPException(422, f"Unknown conversation kind: {kind}")
    summaries = service.list_conversations(kind=parsed_kind, query=q)
    return ConversationListResponse(
        conversations=[s.to_dict() for s in summaries],
        active_conversation_id=service.active_conversation_id,
    )


@router.get("/conversations/unread", response_model=UnreadResponse)
async def get_unread(request: Request):
    return UnreadResponse(total=_service(request).get_unread_total())


@router.post("/conversations/close", response_model=NavigationResponse)
async def close_conversation(request: Request):
    service = _service(request)
    service.close_conversation()
    return _navigation(service)


@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, request: Request):
    try:
        conversation = _service(request).get_conversation(conversation_id)
    except ConversationNotFoundError:
        raise HTTPException(404, f"Conversation {conversation_id} not found")
    return conversation.to_dict()


@router.post(
    "/conversations/{conversation_id}/messages",
    response_model=SendMessageResponse,
    status_code=201,
)
async def send_conversation_message(
    conversation_id: str, req: SendMessageRequest, request: Request,
):
    try:
        message = _service(request).send_conversation_message(conversation_id, req.text)
    except ConversationNotFoundError:
        raise HTTPException(404, f"Conversation {conversation_id} not found")
    return SendMessageResponse(
        conversation_id=conversation_id,
        message=message.to_dict() if message else None,
    )


@router.post("/conversations/{conversation_id}/select", response_model=NavigationResponse)
async def select_conversation(conversation_id: str, request: Request):
    service = _service(request)
    if not service.select_conversation(conversation_id):
        raise HTTPException(404, f"Conversation {conversation_id} not found")
    return _navigation(service)


# ============ Navigation Endpoints ============

@router.post("/matches/{conversation_id}/open", response_model=NavigationResponse)
async def open_match(conversation_id: str, request: Request):
    service = _service(request)
    if not service.open_match_from_card(conversation_id):
        raise HTTPException(404, f"Conversation {conversation_id} not found")
    return _navigation(service)


@router.post("/tabs/{tab}", response_model=NavigationResponse)
async def select_tab(tab: str, request: Request):
    service = _service(request)
    try:
        service.select_tab(Tab(tab))
    except ValueError:
        raise HTTPException(422, f"Unknown tab: {tab}")
    return _navigation(service)


# ============ WebSocket ============

async def _serve_channel(websocket: WebSocket, client_id: str, channel: str) -> None:
    ws_manager = websocket.app.state.ws_manager
    connection_id = await ws_manager.connect(websocket, client_id)
    if not connection_id:
        return

    await ws_manager.subscribe_channel(connection_id, channel)

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await ws_manager.disconnect(connection_id)


@ws_router.websocket("/ws/events")
async def events_ws(websocket: WebSocket):
    await _serve_channel(websocket, generate_id("ws_client"), ALL_EVENTS_CHANNEL)


@ws_router.websocket("/ws/assistant")
async def assistant_ws(websocket: WebSocket):
    await _serve_channel(websocket, generate_id("ws_client"), ASSISTANT_CHANNEL)


@ws_router.websocket("/ws/conversations/{conversation_id}")
async def conversation_ws(websocket: WebSocket, conversation_id: str):
    service: BuddyUpService = websocket.app.state.service
    if conversation_id not in service.registry:
        await websocket.close(code=4004, reason="Conversation not found")
        return

    await _serve_channel(
        websocket,
        f"ws_client_{conversation_id}",
        conversation_channel(conversation_id),
    )
