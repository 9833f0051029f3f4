"""
ConversationRegistry — conversation metadata on top of the MessageStore.

The registry owns the derived state of every conversation: preview text,
last-activity time and the unread counter. All three are updated under the
conversation's store lock in the same critical section as the append, so
readers never observe a message without its derived state.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from typing import Callable, Optional

from .errors import ConversationNotFoundError, DuplicateConversationError, RegistryError
from .models import (
    Conversation,
    ConversationKind,
    ConversationSummary,
    Message,
    MessageKind,
    SenderRole,
)
from .store import MessageStore

logger = logging.getLogger(__name__)

SummaryPredicate = Callable[[ConversationSummary], bool]


def preview_text(message: Message, kind: ConversationKind) -> str:
    """Derive the list preview line from a conversation's newest message."""
    if message.sender == SenderRole.SELF:
        return f"You: {message.body}"
    if (
        kind == ConversationKind.GROUP
        and message.sender == SenderRole.COUNTERPART
        and message.sender_name
    ):
        return f"{message.sender_name}: {message.body}"
    return message.body


def conversation_filter(
    kind: Optional[ConversationKind] = None,
    query: str = "",
) -> SummaryPredicate:
    """
    Build the listing predicate used by the chat list.

    ``kind`` of None matches every conversation. ``query`` is matched
    case-insensitively against the name and the preview line.
    """
    needle = query.strip().lower()

    def _predicate(summary: ConversationSummary) -> bool:
        if kind is not None and summary.kind != kind:
            return False
        if not needle:
            return True
        return needle in summary.name.lower() or needle in summary.last_message.lower()

    return _predicate


class ConversationRegistry:
    """
    Conversations keyed by id, listed newest-created first.

    Usage::

        registry = ConversationRegistry()
        registry.create(Conversation(conversation_id="c1", kind=..., name="..."))
        registry.append_message("c1", message, active=False)
        registry.total_unread()
    """

    def __init__(self, store: Optional[MessageStore] = None):
        self._store = store if store is not None else MessageStore()
        self._records: dict[str, Conversation] = {}
        self._order: list[str] = []
        self._lock = threading.Lock()

    @property
    def store(self) -> MessageStore:
        return self._store

    # ── Mutations ──

    def create(self, record: Conversation) -> str:
        """
        Insert a conversation at the head of the listing.

        The record's ``messages`` seed the log; preview and timestamp are
        derived from the last of them. ``unread`` is taken as given.
        """
        for message in record.messages:
            self._reject_match_card(message)
        if record.unread < 0:
            raise RegistryError(f"Negative unread count for {record.conversation_id}")

        with self._lock:
            cid = record.conversation_id
            if cid in self._records:
                raise DuplicateConversationError(cid)
            self._store.open(cid, record.messages)

            stored = dataclasses.replace(record, messages=[])
            if record.messages:
                newest = record.messages[-1]
                stored.last_message = preview_text(newest, record.kind)
                stored.last_time = newest.created_at
            self._records[cid] = stored
            self._order.insert(0, cid)

        logger.info(
            "Conversation created: %s (%s, %r, unread=%d)",
            cid, record.kind.value, record.name, record.unread,
        )
        return cid

    def mark_read(self, conversation_id: str) -> None:
        """Reset unread to zero. Unknown ids are ignored."""
        record = self._records.get(conversation_id)
        if record is None:
            logger.debug("mark_read: conversation %s not found, ignoring", conversation_id)
            return
        with self._store.lock_for(conversation_id):
            record.unread = 0

    def append_message(
        self,
        conversation_id: str,
        message: Message,
        active: bool = False,
    ) -> int:
        """
        Append ``message`` and update derived state.

        Inbound messages bump unread by one unless ``active`` says the
        conversation is the one being viewed. Returns the log position.
        """
        self._reject_match_card(message)
        record = self._records.get(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)

        with self._store.lock_for(conversation_id):
            position = self._store.append(conversation_id, message)
            record.last_message = preview_text(message, record.kind)
            record.last_time = message.created_at
            if message.is_inbound and not active:
                record.unread += 1
        return position

    # ── Queries ──

    def get(self, conversation_id: str) -> Conversation:
        """Full snapshot, messages included."""
        record = self._records.get(conversation_id)
        if record is None:
            raise ConversationNotFoundError(conversation_id)
        with self._store.lock_for(conversation_id):
            return dataclasses.replace(
                record,
                participants=list(record.participants),
                messages=list(self._store.read_all(conversation_id)),
            )

    def read_messages(self, conversation_id: str) -> tuple[Message, ...]:
        if conversation_id not in self._records:
            raise ConversationNotFoundError(conversation_id)
        return self._store.read_all(conversation_id)

    def total_unread(self) -> int:
        with self._lock:
            records = list(self._records.values())
        return sum(record.unread for record in records)

    def list(self, predicate: Optional[SummaryPredicate] = None) -> list[ConversationSummary]:
        summaries = []
        for cid in list(self._order):
            summary = self._summary(cid)
            if predicate is None or predicate(summary):
                summaries.append(summary)
        return summaries

    def kind_of(self, conversation_id: str) -> Optional[ConversationKind]:
        record = self._records.get(conversation_id)
        return record.kind if record else None

    def __contains__(self, conversation_id: object) -> bool:
        return conversation_id in self._records

    def __len__(self) -> int:
        return len(self._records)

    # ── Internals ──

    def _summary(self, conversation_id: str) -> ConversationSummary:
        record = self._records[conversation_id]
        with self._store.lock_for(conversation_id):
            return ConversationSummary(
                conversation_id=record.conversation_id,
                kind=record.kind,
                name=record.name,
                avatar=record.avatar,
                last_message=record.last_message,
                last_time=record.last_time,
                unread=record.unread,
                message_count=self._store.count(conversation_id),
            )

    @staticmethod
    def _reject_match_card(message: Message) -> None:
        if message.kind == MessageKind.MATCH_CARD:
            raise RegistryError("match-card messages belong to the assistant session only")
