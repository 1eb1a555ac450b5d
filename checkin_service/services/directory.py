# checkin_service/services/directory.py
import logging
from datetime import datetime
from typing import Callable, List, Optional

from checkin_service.core.constants import QueueStatus
from checkin_service.core.exceptions import AttendeeNotFoundError, VideoRequiredError
from checkin_service.crud.base import AttendeeStore, QueueStore
from checkin_service.schemas.attendee import (
    Attendee,
    AttendeeCreate,
    AttendeeUpdate,
    AttendeeSummary,
    AttendeeStats,
)
from checkin_service.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class AttendeeDirectory:
    """Registration and lookup of attendees. Check-in fields are never written here."""

    def __init__(
        self,
        attendees: AttendeeStore,
        queue_store: QueueStore,
        *,
        now: Callable[[], datetime] = utc_now,
    ):
        self.attendees = attendees
        self.queue = queue_store
        self._now = now

    async def create_attendee(self, obj_in: AttendeeCreate) -> Attendee:
        attendee = await self.attendees.create(obj_in, created_at=self._now())
        logger.info(f"User created: {attendee.user_id} (VIP={attendee.is_vip})")
        return attendee

    async def get_attendee(self, user_id: str) -> Attendee:
        attendee = await self.attendees.get(user_id)
        if attendee is None:
            raise AttendeeNotFoundError(user_id)
        return attendee

    async def update_attendee(self, user_id: str, obj_in: AttendeeUpdate) -> Attendee:
        """
        Apply a partial update. Check-in state is never touched.

        Raises:
            AttendeeNotFoundError: Unknown identifier
            VideoRequiredError: The merged record would be a VIP without a video
        """
        current = await self.get_attendee(user_id)

        changes = obj_in.model_fields_set
        is_vip = obj_in.is_vip if "is_vip" in changes else current.is_vip
        video_url = obj_in.video_url if "video_url" in changes else current.video_url
        if is_vip and not video_url:
            logger.warning(f"Rejected update of {user_id}: VIP without a video")
            raise VideoRequiredError(user_id)

        updated = await self.attendees.update(user_id, obj_in, updated_at=self._now())
        if updated is None:
            raise AttendeeNotFoundError(user_id)
        logger.info(f"User updated: {user_id}")
        return updated

    async def list_attendees(
        self, limit: Optional[int] = None, start_after: Optional[str] = None
    ) -> List[Attendee]:
        return await self.attendees.list(limit=limit, start_after=start_after)

    async def list_vips(self) -> List[Attendee]:
        return await self.attendees.list_vips()

    async def list_summary(self) -> List[AttendeeSummary]:
        """Identifier and name of every attendee, for the recognition team."""
        return [
            AttendeeSummary(user_id=a.user_id, name=a.name)
            for a in await self.attendees.list()
        ]

    async def attendee_stats(self) -> AttendeeStats:
        counts = await self.attendees.counts()
        queue_length = await self.queue.count_by_status(QueueStatus.WAITING)
        checkin_rate = 0.0
        if counts.total_users > 0:
            checkin_rate = round(counts.total_checked_in / counts.total_users * 100, 2)
        return AttendeeStats(
            **counts.model_dump(),
            queue_length=queue_length,
            checkin_rate=checkin_rate,
        )
