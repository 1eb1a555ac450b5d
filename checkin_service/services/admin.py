# checkin_service/services/admin.py
"""
Administrative operations: statistics, health, and bulk resets.

Both resets clear the playback queue before touching attendees so that no
entry is left pointing at a reset or deleted attendee.
"""

import logging
import time
from datetime import datetime
from typing import Awaitable, Callable, Optional

from checkin_service.crud.base import AttendeeStore
from checkin_service.schemas.admin import (
    SystemStats,
    QueueClearResult,
    ResetCheckinsResult,
    ResetDataResult,
    HealthReport,
)
from checkin_service.services.admission import AdmissionController
from checkin_service.services.directory import AttendeeDirectory
from checkin_service.services.recognition import RecognitionClient
from checkin_service.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


class AdminService:

    def __init__(
        self,
        attendees: AttendeeStore,
        directory: AttendeeDirectory,
        admission: AdmissionController,
        recognition: RecognitionClient,
        *,
        batch_size: int = 500,
        store_probe: Optional[Callable[[], Awaitable[bool]]] = None,
        now: Callable[[], datetime] = utc_now,
    ):
        self.attendees = attendees
        self.directory = directory
        self.admission = admission
        self.recognition = recognition
        self.batch_size = batch_size
        self._store_probe = store_probe
        self._now = now
        self._started = time.monotonic()

    async def system_stats(self) -> SystemStats:
        return SystemStats(
            users=await self.directory.attendee_stats(),
            queue=await self.admission.stats(),
            timestamp=self._now(),
        )

    async def clear_queue(self) -> QueueClearResult:
        count = await self.admission.clear()
        logger.warning(f"Queue cleared by admin: {count} items")
        return QueueClearResult(items_cleared=count)

    async def reset_checkins(self) -> ResetCheckinsResult:
        """Clear the queue, then reset every checked-in attendee in batches."""
        logger.warning("Reset of all check-ins initiated")

        queue_cleared = await self.admission.clear()
        reset_count = await self.attendees.reset_checkins(
            batch_size=self.batch_size,
            updated_at=self._now(),
        )
        total_users = (await self.attendees.counts()).total_users

        logger.info(f"All check-ins reset: {reset_count} users")
        return ResetCheckinsResult(
            reset_count=reset_count,
            total_users=total_users,
            queue_cleared=queue_cleared,
            message=f"Reset {reset_count} checked-in users",
        )

    async def reset_data(self) -> ResetDataResult:
        """Clear the queue, then delete every attendee in batches."""
        logger.warning("Reset of all data initiated, deleting all users")

        queue_cleared = await self.admission.clear()
        users_deleted = await self.attendees.delete_all(batch_size=self.batch_size)

        logger.info(f"All data reset: {users_deleted} users deleted, {queue_cleared} queue items cleared")
        return ResetDataResult(
            queue_cleared=queue_cleared,
            users_deleted=users_deleted,
            message=f"Deleted {users_deleted} users and cleared {queue_cleared} queue items",
        )

    async def health(self) -> HealthReport:
        store_ok = True
        if self._store_probe is not None:
            store_ok = await self._store_probe()

        ai_health = await self.recognition.health_check()

        return HealthReport(
            status="ok" if store_ok else "degraded",
            timestamp=self._now(),
            uptime_seconds=round(time.monotonic() - self._started, 3),
            services={
                "store": "ok" if store_ok else "unavailable",
                "ai": "ok" if ai_health.available else "unavailable",
            },
        )
