"""
BuddyUp — an AI wingman that turns chat into activity partners and groups.

Public API surface. Import everything you need from here::

    from buddyup import ServiceBuilder, BuddyUpService

Extension points (implement these Protocols to customize):

- ``ModelClient`` — swap the conversational model
- ``MatchHandler`` — replace how matches are synthesized
- ``EventPusher`` — custom event transport
"""

# -- Service --
from buddyup.service import BuddyUpService, Tab
from buddyup.builder import ServiceBuilder

# -- Core components --
from buddyup.core.bus import EventBus
from buddyup.core.gateway import ModelGateway
from buddyup.core.orchestrator import MatchOrchestrator
from buddyup.core.registry import ConversationRegistry
from buddyup.core.session import AssistantSession
from buddyup.core.simulator import ReplySimulator
from buddyup.core.store import MessageStore

# -- Data models --
from buddyup.core.models import (
    Conversation,
    ConversationKind,
    ConversationSummary,
    MatchPayload,
    Message,
    MessageKind,
    Participant,
    SenderRole,
)

# -- Events --
from buddyup.core.events import ChatEvent, EventType

# -- Errors --
from buddyup.core.errors import (
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

# -- Protocols (contracts for extension) --
from buddyup.core.protocols import EventPusher, MatchHandler, ModelClient

# -- Default implementations --
from buddyup.infra.event_pusher import (
    LoggingEventPusher,
    NullEventPusher,
    WebSocketEventPusher,
)

__all__ = [
    # Service
    "BuddyUpService",
    "ServiceBuilder",
    "Tab",
    # Components
    "EventBus",
    "ModelGateway",
    "MatchOrchestrator",
    "ConversationRegistry",
    "AssistantSession",
    "ReplySimulator",
    "MessageStore",
    # Models
    "Conversation",
    "ConversationKind",
    "ConversationSummary",
    "MatchPayload",
    "Message",
    "MessageKind",
    "Participant",
    "SenderRole",
    # Events
    "ChatEvent",
    "EventType",
    # Errors
    "BuddyUpError",
    "ConfigError",
    "ConversationNotFoundError",
    "DuplicateConversationError",
    "GatewayError",
    "InvocationError",
    "MatchError",
    "RegistryError",
    "SessionBusyError",
    # Protocols
    "ModelClient",
    "MatchHandler",
    "EventPusher",
    # Default implementations
    "NullEventPusher",
    "LoggingEventPusher",
    "WebSocketEventPusher",
]
