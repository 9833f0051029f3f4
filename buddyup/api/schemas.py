"""
Pydantic request/response models for the BuddyUp API.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, Field


# ============ Requests ============

class SendMessageRequest(BaseModel):
    text: str


# ============ Assistant ============

class AssistantResponse(BaseModel):
    thinking: bool
    messages: list[dict[str, Any]] = Field(default_factory=list)


# ============ Conversations ============

class ConversationListResponse(BaseModel):
    conversations: list[dict[str, Any]] = Field(default_factory=list)
    active_conversation_id: Optional[str] = None


class UnreadResponse(BaseModel):
    total: int


class SendMessageResponse(BaseModel):
    conversation_id: str
    message: Optional[dict[str, Any]] = None


# ============ Navigation ============

class NavigationResponse(BaseModel):
    active_tab: str
    active_conversation_id: Optional[str] = None
