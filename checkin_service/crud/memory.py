# checkin_service/crud/memory.py
"""
In-process stores.

Used for single-node deployments without a database and as the default
backend in tests. Each store serializes its writes with an asyncio.Lock, so
check-then-write sequences such as try_admit are atomic within the process.
"""

import asyncio
import itertools
import logging
from datetime import datetime
from typing import Dict, List, Optional

from checkin_service.core.constants import QueueStatus, ACTIVE_QUEUE_STATUSES
from checkin_service.core.exceptions import AttendeeExistsError
from checkin_service.crud.base import (
    AttendeeStore,
    QueueStore,
    AdmitResult,
    AdmitRejection,
    chunked,
)
from checkin_service.schemas.attendee import (
    Attendee,
    AttendeeCreate,
    AttendeeUpdate,
    AttendeeCounts,
    CheckinRecord,
)
from checkin_service.schemas.queue import QueueEntry

logger = logging.getLogger(__name__)


class InMemoryAttendeeStore(AttendeeStore):

    def __init__(self):
        self._records: Dict[str, Attendee] = {}
        self._lock = asyncio.Lock()

    async def get(self, user_id: str) -> Optional[Attendee]:
        return self._records.get(user_id)

    async def create(self, obj_in: AttendeeCreate, *, created_at: datetime) -> Attendee:
        async with self._lock:
            if obj_in.user_id in self._records:
                raise AttendeeExistsError(obj_in.user_id)
            attendee = Attendee(
                **obj_in.model_dump(by_alias=False),
                created_at=created_at,
                updated_at=created_at,
            )
            self._records[attendee.user_id] = attendee
            return attendee

    async def update(
        self, user_id: str, obj_in: AttendeeUpdate, *, updated_at: datetime
    ) -> Optional[Attendee]:
        async with self._lock:
            current = self._records.get(user_id)
            if current is None:
                return None
            changes = obj_in.model_dump(exclude_unset=True, by_alias=False)
            updated = current.model_copy(update={**changes, "updated_at": updated_at})
            self._records[user_id] = updated
            return updated

    async def list(self, *, limit: Optional[int] = None, start_after: Optional[str] = None) -> List[Attendee]:
        ordered = sorted(self._records.values(), key=lambda a: a.user_id)
        if start_after:
            ordered = [a for a in ordered if a.user_id > start_after]
        if limit is not None:
            ordered = ordered[:limit]
        return ordered

    async def list_vips(self) -> List[Attendee]:
        return [a for a in await self.list() if a.is_vip]

    async def list_checked_in(self, *, limit: int) -> List[Attendee]:
        checked_in = [a for a in self._records.values() if a.checked_in]
        # Records without a usable timestamp sort last
        checked_in.sort(
            key=lambda a: a.checkin.at.timestamp() if a.checkin else float("-inf"),
            reverse=True,
        )
        return checked_in[:limit]

    async def record_checkin(
        self,
        user_id: str,
        record: CheckinRecord,
        *,
        previous_at: Optional[datetime],
    ) -> Optional[Attendee]:
        async with self._lock:
            current = self._records.get(user_id)
            if current is None:
                return None
            current_at = current.checkin.at if current.checkin else None
            if current_at != previous_at:
                return None
            if previous_at is None and current.checkin_unrecoverable:
                return None
            updated = current.model_copy(update={"checkin": record, "updated_at": record.at})
            self._records[user_id] = updated
            return updated

    async def counts(self) -> AttendeeCounts:
        records = list(self._records.values())
        return AttendeeCounts(
            total_users=len(records),
            total_checked_in=sum(1 for a in records if a.checked_in),
            total_vips=sum(1 for a in records if a.is_vip),
            vips_checked_in=sum(1 for a in records if a.is_vip and a.checked_in),
        )

    async def reset_checkins(self, *, batch_size: int, updated_at: datetime) -> int:
        targets = [a.user_id for a in self._records.values() if a.checked_in]
        reset_count = 0
        for chunk in chunked(targets, batch_size):
            async with self._lock:
                for user_id in chunk:
                    current = self._records.get(user_id)
                    if current is None:
                        continue
                    self._records[user_id] = current.model_copy(
                        update={
                            "checkin": None,
                            "checkin_unrecoverable": False,
                            "updated_at": updated_at,
                        }
                    )
            reset_count += len(chunk)
            logger.debug(f"Reset batch: {len(chunk)} users (total: {reset_count})")
        return reset_count

    async def delete_all(self, *, batch_size: int) -> int:
        targets = list(self._records.keys())
        deleted_count = 0
        for chunk in chunked(targets, batch_size):
            async with self._lock:
                for user_id in chunk:
                    self._records.pop(user_id, None)
            deleted_count += len(chunk)
            logger.debug(f"Deleted batch: {len(chunk)} users (total: {deleted_count})")
        return deleted_count


class InMemoryQueueStore(QueueStore):

    def __init__(self):
        self._entries: Dict[str, QueueEntry] = {}
        self._sequence = itertools.count(1)
        self._lock = asyncio.Lock()

    def _ordered(self, status: QueueStatus) -> List[QueueEntry]:
        matching = [e for e in self._entries.values() if e.status == status]
        return sorted(matching, key=lambda e: (e.created_at, e.sequence))

    def _is_active(self, attendee_id: str) -> bool:
        return any(
            e.attendee_id == attendee_id and e.status in ACTIVE_QUEUE_STATUSES
            for e in self._entries.values()
        )

    def _insert(self, entry: QueueEntry) -> QueueEntry:
        stored = entry.model_copy(update={"sequence": next(self._sequence)})
        self._entries[stored.queue_id] = stored
        return stored

    async def get(self, queue_id: str) -> Optional[QueueEntry]:
        return self._entries.get(queue_id)

    async def add(self, entry: QueueEntry) -> QueueEntry:
        async with self._lock:
            return self._insert(entry)

    async def list_by_status(self, status: QueueStatus) -> List[QueueEntry]:
        return self._ordered(status)

    async def count_by_status(self, status: QueueStatus) -> int:
        return sum(1 for e in self._entries.values() if e.status == status)

    async def has_active_entry(self, attendee_id: str) -> bool:
        return self._is_active(attendee_id)

    async def try_admit(self, entry: QueueEntry, *, max_waiting: int) -> AdmitResult:
        async with self._lock:
            waiting = sum(1 for e in self._entries.values() if e.status == QueueStatus.WAITING)
            if waiting >= max_waiting:
                return AdmitResult.rejected(AdmitRejection.QUEUE_FULL)
            if self._is_active(entry.attendee_id):
                return AdmitResult.rejected(AdmitRejection.ALREADY_QUEUED)
            stored = self._insert(entry)
            return AdmitResult.accepted(stored, position=waiting + 1)

    async def update_status(
        self,
        queue_id: str,
        *,
        expected: QueueStatus,
        status: QueueStatus,
        at: datetime,
    ) -> Optional[QueueEntry]:
        async with self._lock:
            current = self._entries.get(queue_id)
            if current is None or current.status != expected:
                return None
            changes = {"status": status}
            if status == QueueStatus.PLAYING:
                changes["played_at"] = at
            else:
                changes["completed_at"] = at
            updated = current.model_copy(update=changes)
            self._entries[queue_id] = updated
            return updated

    async def clear_all(self, *, batch_size: int) -> int:
        targets = list(self._entries.keys())
        cleared = 0
        for chunk in chunked(targets, batch_size):
            async with self._lock:
                for queue_id in chunk:
                    self._entries.pop(queue_id, None)
            cleared += len(chunk)
        return cleared
