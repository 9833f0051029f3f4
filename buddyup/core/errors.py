"""
Unified exception hierarchy for BuddyUp.

All exceptions inherit from BuddyUpError. Each component has its own
exception type for clear error attribution.
"""


class BuddyUpError(Exception):
    """Base exception for all BuddyUp errors."""
    pass


class ConfigError(BuddyUpError):
    """Configuration error (invalid settings, malformed capability declaration)."""
    pass


class GatewayError(BuddyUpError):
    """Model call failure (transport, auth, timeout, malformed response)."""
    pass


class InvocationError(BuddyUpError):
    """Capability invocation with missing or invalid arguments."""
    pass


class SessionBusyError(BuddyUpError):
    """A model call is already in flight for this assistant session."""
    pass


class RegistryError(BuddyUpError):
    """Conversation registry / message store failure."""
    pass


class ConversationNotFoundError(RegistryError):
    """Operation on a conversation id that does not exist."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} not found")
        self.conversation_id = conversation_id


class DuplicateConversationError(RegistryError):
    """Conversation id already registered."""

    def __init__(self, conversation_id: str):
        super().__init__(f"Conversation {conversation_id} already exists")
        self.conversation_id = conversation_id


class MatchError(BuddyUpError):
    """Match attempt aborted or invalid orchestrator state transition."""
    pass
