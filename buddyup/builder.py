"""
ServiceBuilder — convenience factory for assembling a BuddyUpService
with all its collaborators.

Wires the event bus so that the assistant session receives match cards
and the event pusher sees every event. Only a model client is truly
required; it is created from config when an API key is available.

Usage (headless)::

    from buddyup import ServiceBuilder

    service = (
        ServiceBuilder()
        .with_model_client(my_client)
        .reply_delay(0.5)
        .build()
    )
    await service.send_assistant_message("Find me a tennis partner")
"""

from __future__ import annotations

import logging
from typing import Optional

from buddyup.core.bus import EventBus
from buddyup.core.errors import ConfigError
from buddyup.core.events import EventType
from buddyup.core.gateway import ModelGateway
from buddyup.core.orchestrator import MatchOrchestrator
from buddyup.core.protocols import EventPusher, ModelClient
from buddyup.core.registry import ConversationRegistry
from buddyup.core.session import AssistantSession
from buddyup.core.simulator import ReplySimulator
from buddyup.infra.config import BuddyUpConfig
from buddyup.infra.event_pusher import NullEventPusher
from buddyup.seed import seed_demo_conversations, self_participant
from buddyup.service import BuddyUpService

logger = logging.getLogger(__name__)


class ServiceBuilder:
    """Fluent builder for BuddyUpService."""

    def __init__(self, config: Optional[BuddyUpConfig] = None) -> None:
        self._config = config
        self._model_client: ModelClient | None = None
        self._event_pusher: EventPusher | None = None
        self._registry: ConversationRegistry | None = None
        self._synthesis_delay_s: float | None = None
        self._reply_delay_s: float | None = None
        self._model_timeout_s: float | None = None
        self._seed: bool | None = None

    def with_config(self, config: BuddyUpConfig) -> ServiceBuilder:
        self._config = config
        return self

    def with_model_client(self, client: ModelClient) -> ServiceBuilder:
        self._model_client = client
        return self

    def with_event_pusher(self, pusher: EventPusher) -> ServiceBuilder:
        self._event_pusher = pusher
        return self

    def with_registry(self, registry: ConversationRegistry) -> ServiceBuilder:
        self._registry = registry
        return self

    def synthesis_delay(self, seconds: float) -> ServiceBuilder:
        self._synthesis_delay_s = seconds
        return self

    def reply_delay(self, seconds: float) -> ServiceBuilder:
        self._reply_delay_s = seconds
        return self

    def model_timeout(self, seconds: float) -> ServiceBuilder:
        self._model_timeout_s = seconds
        return self

    def seed_demo_data(self, enabled: bool = True) -> ServiceBuilder:
        self._seed = enabled
        return self

    # --- Build ---

    def build(self) -> BuddyUpService:
        """
        Assemble the service.

        Raises ConfigError if no model client was given and none can be
        created from config.
        """
        config = self._config or BuddyUpConfig()

        model_client = self._model_client
        if model_client is None:
            keys = config.get_api_keys()
            if not keys:
                raise ConfigError(
                    "No model client provided and no BUDDYUP_ANTHROPIC_API_KEY set"
                )
            from buddyup.infra.llm_client import ClaudeModelClient
            model_client = ClaudeModelClient(
                api_key=keys,
                model=config.default_model,
                max_tokens=config.max_tokens,
                base_url=config.get_base_url(),
            )

        registry = self._registry if self._registry is not None else ConversationRegistry()
        seed = self._seed if self._seed is not None else config.seed_demo_data
        if seed:
            seed_demo_conversations(registry)

        me = self_participant(config.user_id, config.user_name, config.user_vip)
        session = AssistantSession.with_welcome(me.display_name)

        bus = EventBus()
        # Session first: the card must be in the log before pushers see the event.
        bus.subscribe(EventType.MATCH_COMMITTED.value, session.on_match_committed)
        pusher = self._event_pusher or NullEventPusher()
        bus.subscribe("*", pusher.push)

        orchestrator = MatchOrchestrator(
            registry=registry,
            event_bus=bus,
            synthesis_delay_s=_pick(self._synthesis_delay_s, config.match_synthesis_delay_seconds),
        )
        gateway = ModelGateway(
            model_client=model_client,
            match_handler=orchestrator,
            event_bus=bus,
            timeout_s=_pick(self._model_timeout_s, config.model_timeout_seconds),
        )

        service: BuddyUpService
        simulator = ReplySimulator(
            registry=registry,
            event_bus=bus,
            delay_s=_pick(self._reply_delay_s, config.reply_delay_seconds),
            is_active=lambda cid: service.is_active(cid),
        )
        service = BuddyUpService(
            registry=registry,
            session=session,
            gateway=gateway,
            simulator=simulator,
            event_bus=bus,
            self_participant=me,
        )

        logger.info(
            "ServiceBuilder: built service (client=%s, pusher=%s, conversations=%d)",
            type(model_client).__name__,
            type(pusher).__name__,
            len(registry),
        )
        return service


def _pick(override: Optional[float], default: float) -> float:
    return override if override is not None else default
