"""
Demo data present at startup: the self participant, two existing
conversations and the assistant's welcome message.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from buddyup.core.models import (
    Conversation,
    ConversationKind,
    Message,
    Participant,
    SenderRole,
)
from buddyup.core.registry import ConversationRegistry

logger = logging.getLogger(__name__)

AVATAR_BASE = "https://api.dicebear.com/7.x"


def self_participant(user_id: str = "me", name: str = "Alex", vip: bool = True) -> Participant:
    return Participant(
        participant_id=user_id,
        display_name=name,
        avatar=f"{AVATAR_BASE}/avataaars/svg?seed={name}",
        is_vip=vip,
    )


def seed_demo_conversations(registry: ConversationRegistry) -> None:
    """Seed the two demo threads. Idempotent."""
    now = datetime.now(timezone.utc)

    sam = Participant("sam", "Sam", f"{AVATAR_BASE}/avataaars/svg?seed=Sam")
    jordan = Participant("jordan", "Jordan Lee", f"{AVATAR_BASE}/avataaars/svg?seed=Jordan")

    demo = [
        Conversation(
            conversation_id="group-demo",
            kind=ConversationKind.GROUP,
            name="Weekend Hikers 🏔️",
            avatar=f"{AVATAR_BASE}/identicon/svg?seed=hike",
            participants=[sam],
            messages=[Message(
                message_id="m1",
                sender=SenderRole.COUNTERPART,
                sender_name="Sam",
                body="The trail looks great for Sunday!",
                created_at=now - timedelta(minutes=15),
            )],
            unread=2,
        ),
        Conversation(
            conversation_id="direct-demo",
            kind=ConversationKind.DIRECT,
            name="Jordan Lee",
            avatar=jordan.avatar,
            participants=[jordan],
            messages=[Message(
                message_id="m2",
                sender=SenderRole.COUNTERPART,
                sender_name="Jordan",
                body="Hey! Are you still looking for a tennis partner?",
                created_at=now - timedelta(hours=3),
            )],
            unread=1,
        ),
    ]

    # create() inserts at the head, so insert oldest-listed last.
    for conversation in reversed(demo):
        if conversation.conversation_id in registry:
            continue
        registry.create(conversation)

    logger.info("Demo conversations seeded: %d", len(registry))
