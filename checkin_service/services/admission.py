# checkin_service/services/admission.py
"""
Admission control for the VIP video playback queue.

Rules applied to every new entry, in this order:
1. fewer than `max_queue_length` entries are WAITING
2. the attendee has no WAITING or PLAYING entry
3. the video URL is a valid http/https URL

Positions are 1-based over WAITING entries ordered by creation time, and
each position waits `seconds_per_item` seconds per slot ahead of it.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from checkin_service.core.constants import QueueStatus, QUEUE_TRANSITIONS
from checkin_service.core.exceptions import (
    QueueFullError,
    AlreadyQueuedError,
    InvalidMediaError,
    InvalidTransitionError,
    QueueEntryNotFoundError,
)
from checkin_service.crud.base import QueueStore, AdmitRejection
from checkin_service.schemas.queue import QueueEntry, PositionedQueueEntry, QueueStats
from checkin_service.utils.time_utils import utc_now
from checkin_service.utils.validators import is_valid_media_url

logger = logging.getLogger(__name__)


class AdmissionController:
    """Sole writer of new queue entries."""

    def __init__(
        self,
        queue_store: QueueStore,
        *,
        max_queue_length: int = 10,
        seconds_per_item: int = 30,
        batch_size: int = 500,
        now: Callable[[], datetime] = utc_now,
    ):
        self.queue = queue_store
        self.max_queue_length = max_queue_length
        self.seconds_per_item = seconds_per_item
        self.batch_size = batch_size
        self._now = now

    def _positioned(self, entry: QueueEntry, position: int) -> PositionedQueueEntry:
        return PositionedQueueEntry(
            **entry.model_dump(),
            position=position,
            estimated_wait_time=position * self.seconds_per_item,
        )

    async def enqueue(self, attendee_id: str, name: str, video_url: Optional[str]) -> PositionedQueueEntry:
        """
        Admit an attendee's video to the tail of the queue.

        Raises:
            QueueFullError: WAITING count already at the limit
            AlreadyQueuedError: Attendee already has an active entry
            InvalidMediaError: video_url is missing or not http/https
        """
        if not is_valid_media_url(video_url):
            # Capacity and duplicate problems take precedence over a bad URL
            if await self.queue.count_by_status(QueueStatus.WAITING) >= self.max_queue_length:
                logger.warning(f"Queue is full, rejecting {attendee_id}")
                raise QueueFullError(self.max_queue_length)
            if await self.queue.has_active_entry(attendee_id):
                logger.warning(f"User {attendee_id} already in queue")
                raise AlreadyQueuedError(attendee_id)
            logger.warning(f"Invalid video URL for {attendee_id}: {video_url!r}")
            raise InvalidMediaError(video_url)

        entry = QueueEntry(
            attendee_id=attendee_id,
            name=name,
            video_url=video_url,
            created_at=self._now(),
        )
        result = await self.queue.try_admit(entry, max_waiting=self.max_queue_length)

        if not result.admitted:
            if result.rejection == AdmitRejection.QUEUE_FULL:
                logger.warning(f"Queue is full, rejecting {attendee_id}")
                raise QueueFullError(self.max_queue_length)
            logger.warning(f"User {attendee_id} already in queue")
            raise AlreadyQueuedError(attendee_id)

        logger.info(
            f"VIP {attendee_id} added to queue as {result.entry.queue_id} "
            f"at position {result.position}"
        )
        return self._positioned(result.entry, result.position)

    async def list_with_positions(self) -> List[PositionedQueueEntry]:
        """WAITING entries, oldest first, numbered from 1."""
        waiting = await self.queue.list_by_status(QueueStatus.WAITING)
        return [self._positioned(entry, index) for index, entry in enumerate(waiting, start=1)]

    async def next_entry(self) -> Optional[PositionedQueueEntry]:
        waiting = await self.queue.list_by_status(QueueStatus.WAITING)
        if not waiting:
            return None
        return self._positioned(waiting[0], 1)

    async def transition(self, queue_id: str, new_status: QueueStatus) -> QueueEntry:
        """
        Move an entry along the playback state machine and stamp the time.

        Raises:
            QueueEntryNotFoundError: Unknown queue id
            InvalidTransitionError: Move not allowed from the current status
        """
        current = await self.queue.get(queue_id)
        if current is None:
            raise QueueEntryNotFoundError(queue_id)

        if new_status not in QUEUE_TRANSITIONS[current.status]:
            logger.warning(
                f"Rejected transition of {queue_id}: {current.status.value} -> {new_status.value}"
            )
            raise InvalidTransitionError(queue_id, current.status.value, new_status.value)

        updated = await self.queue.update_status(
            queue_id,
            expected=current.status,
            status=new_status,
            at=self._now(),
        )
        if updated is None:
            # Another consumer moved or removed the entry in the meantime
            latest = await self.queue.get(queue_id)
            if latest is None:
                raise QueueEntryNotFoundError(queue_id)
            raise InvalidTransitionError(queue_id, latest.status.value, new_status.value)

        logger.info(f"Queue item {queue_id} marked as {new_status.value}")
        return updated

    async def mark_playing(self, queue_id: str) -> QueueEntry:
        return await self.transition(queue_id, QueueStatus.PLAYING)

    async def mark_done(self, queue_id: str) -> QueueEntry:
        return await self.transition(queue_id, QueueStatus.DONE)

    async def mark_error(self, queue_id: str) -> QueueEntry:
        return await self.transition(queue_id, QueueStatus.ERROR)

    async def clear(self) -> int:
        """Delete every entry regardless of status. Returns the number removed."""
        count = await self.queue.clear_all(batch_size=self.batch_size)
        logger.info(f"Queue cleared: {count} items removed")
        return count

    async def stats(self) -> QueueStats:
        waiting = await self.queue.list_by_status(QueueStatus.WAITING)
        queue_length = len(waiting)
        total_wait_time = queue_length * self.seconds_per_item
        return QueueStats(
            queue_length=queue_length,
            total_wait_time=total_wait_time,
            average_wait_time=total_wait_time / queue_length if queue_length else 0,
            oldest_item_time=waiting[0].created_at if waiting else None,
        )
