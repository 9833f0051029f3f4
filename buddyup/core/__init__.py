"""Core layer — conversations, assistant session, model gateway, match synthesis."""

from .errors import (
    BuddyUpError,
    ConfigError,
    ConversationNotFoundError,
    DuplicateConversationError,
    GatewayError,
    InvocationError,
    MatchError,
    RegistryError,
    SessionBusyError,
)
from .events import ChatEvent, EventType
from .models import (
    Conversation,
    ConversationKind,
    ConversationSummary,
    MatchAttempt,
    MatchPayload,
    MatchRequest,
    MatchState,
    Message,
    MessageKind,
    Participant,
    SenderRole,
    generate_id,
)
from .protocols import EventPusher, MatchHandler, ModelClient

__all__ = [
    "BuddyUpError", "ConfigError", "GatewayError", "InvocationError",
    "SessionBusyError", "RegistryError", "ConversationNotFoundError",
    "DuplicateConversationError", "MatchError",
    "ChatEvent", "EventType",
    "Conversation", "ConversationKind", "ConversationSummary",
    "MatchAttempt", "MatchPayload", "MatchRequest", "MatchState",
    "Message", "MessageKind", "Participant", "SenderRole", "generate_id",
    "EventPusher", "MatchHandler", "ModelClient",
]
