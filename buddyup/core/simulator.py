"""
ReplySimulator — delayed counterpart replies in ordinary conversations.

Each user message schedules exactly one ScheduledReply. A timer task waits
out the delay and puts the job on a queue; a single worker drains the queue
and appends. The job captures the trigger's log position, so the reply can
only ever land after its trigger.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional

from .bus import EventBus
from .errors import ConversationNotFoundError
from .events import conversation_reply
from .models import ConversationKind, Message, SenderRole, next_message_id
from .registry import ConversationRegistry

logger = logging.getLogger(__name__)

DEFAULT_REPLY_DELAY_S = 2.0

REPLY_TEXT: dict[ConversationKind, str] = {
    ConversationKind.DIRECT: "That sounds great! When are you free?",
    ConversationKind.GROUP: "Welcome to the group everyone!",
}


@dataclass(frozen=True)
class ScheduledReply:
    conversation_id: str
    trigger_message_id: str
    trigger_position: int
    kind: ConversationKind
    scheduled_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def text(self) -> str:
        return REPLY_TEXT[self.kind]


class ReplySimulator:
    """
    Fire-and-forget reply scheduling.

    ``is_active`` tells the simulator whether a conversation is currently
    being viewed, in which case the reply does not count as unread.
    """

    def __init__(
        self,
        registry: ConversationRegistry,
        event_bus: Optional[EventBus] = None,
        delay_s: float = DEFAULT_REPLY_DELAY_S,
        is_active: Optional[Callable[[str], bool]] = None,
    ):
        self._registry = registry
        self._event_bus = event_bus
        self._delay_s = delay_s
        self._is_active = is_active or (lambda _cid: False)
        self._queue: Optional[asyncio.Queue[ScheduledReply]] = None
        self._worker: Optional[asyncio.Task] = None
        self._timers: set[asyncio.Task] = set()
        self.delivered: int = 0

    @property
    def pending(self) -> int:
        """Replies scheduled but not yet appended."""
        queued = self._queue.qsize() if self._queue is not None else 0
        return len(self._timers) + queued

    def schedule(self, conversation_id: str, trigger: Message, trigger_position: int) -> ScheduledReply:
        """
        Schedule one reply to ``trigger``. Must be called from a running loop.

        Unknown conversations raise ConversationNotFoundError here; a
        conversation that disappears before the reply fires is skipped.
        """
        kind = self._registry.kind_of(conversation_id)
        if kind is None:
            raise ConversationNotFoundError(conversation_id)

        job = ScheduledReply(
            conversation_id=conversation_id,
            trigger_message_id=trigger.message_id,
            trigger_position=trigger_position,
            kind=kind,
        )
        self._ensure_worker()
        timer = asyncio.get_running_loop().create_task(self._wait_then_enqueue(job))
        self._timers.add(timer)
        timer.add_done_callback(self._timers.discard)
        logger.debug(
            "Reply scheduled for %s in %.1fs (trigger=%s)",
            conversation_id, self._delay_s, trigger.message_id,
        )
        return job

    async def drain(self) -> None:
        """Wait until every scheduled reply has been delivered or skipped."""
        while self._timers:
            await asyncio.gather(*list(self._timers), return_exceptions=True)
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Cancel pending replies and stop the worker."""
        tasks = list(self._timers)
        if self._worker is not None:
            tasks.append(self._worker)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._timers.clear()
        self._worker = None
        self._queue = None

    # ── Internals ──

    def _ensure_worker(self) -> None:
        if self._worker is None or self._worker.done():
            if self._queue is None:
                self._queue = asyncio.Queue()
            self._worker = asyncio.get_running_loop().create_task(self._run_worker())

    async def _wait_then_enqueue(self, job: ScheduledReply) -> None:
        if self._delay_s > 0:
            await asyncio.sleep(self._delay_s)
        assert self._queue is not None
        await self._queue.put(job)

    async def _run_worker(self) -> None:
        assert self._queue is not None
        queue = self._queue
        while True:
            job = await queue.get()
            try:
                await self._deliver(job)
            except Exception as exc:
                logger.error(
                    "Reply delivery to %s failed: %s", job.conversation_id, exc, exc_info=True,
                )
            finally:
                queue.task_done()

    async def _deliver(self, job: ScheduledReply) -> None:
        try:
            log = self._registry.read_messages(job.conversation_id)
        except ConversationNotFoundError:
            logger.warning("Reply skipped: conversation %s no longer exists", job.conversation_id)
            return

        if (
            len(log) <= job.trigger_position
            or log[job.trigger_position].message_id != job.trigger_message_id
        ):
            logger.warning(
                "Reply skipped: trigger %s not found at position %d in %s",
                job.trigger_message_id, job.trigger_position, job.conversation_id,
            )
            return

        reply = Message(
            message_id=next_message_id(),
            sender=SenderRole.COUNTERPART,
            body=job.text,
        )
        active = self._is_active(job.conversation_id)
        try:
            self._registry.append_message(job.conversation_id, reply, active=active)
        except ConversationNotFoundError:
            logger.warning("Reply skipped: conversation %s no longer exists", job.conversation_id)
            return

        self.delivered += 1
        unread = self._registry.get(job.conversation_id).unread
        logger.info(
            "Reply delivered to %s (active=%s, unread=%d)", job.conversation_id, active, unread,
        )
        if self._event_bus is not None:
            await self._event_bus.publish(conversation_reply(job.conversation_id, reply, unread))
