# checkin_service/crud/crud_queue.py
import asyncio
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, delete, func, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkin_service.core.constants import QueueStatus, ACTIVE_QUEUE_STATUSES
from checkin_service.crud.base import QueueStore, AdmitResult, AdmitRejection, chunked
from checkin_service.models.queue_entry import QueueEntry as QueueEntryModel
from checkin_service.schemas.queue import QueueEntry
from checkin_service.utils.time_utils import ensure_aware

logger = logging.getLogger(__name__)

# Arbitrary key shared by every process that admits into the playback queue
ADMISSION_LOCK_KEY = 7301


def to_schema(row: QueueEntryModel) -> QueueEntry:
    return QueueEntry(
        queue_id=row.queue_id,
        attendee_id=row.attendee_id,
        name=row.name,
        video_url=row.video_url,
        status=QueueStatus(row.status),
        created_at=ensure_aware(row.created_at),
        played_at=ensure_aware(row.played_at),
        completed_at=ensure_aware(row.completed_at),
        sequence=row.id or 0,
    )


class CRUDQueue(QueueStore):
    """
    SQL-backed playback queue.

    Admission runs inside one transaction. Within a process an asyncio.Lock
    serializes admitters; across processes on PostgreSQL a transaction-scoped
    advisory lock does the same, and the partial unique index on active
    entries catches any duplicate that slips through.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory
        self._admit_lock = asyncio.Lock()

    async def get(self, queue_id: str) -> Optional[QueueEntry]:
        async with self._session_factory() as db:
            row = (
                await db.execute(select(QueueEntryModel).where(QueueEntryModel.queue_id == queue_id))
            ).scalar_one_or_none()
            return to_schema(row) if row else None

    async def add(self, entry: QueueEntry) -> QueueEntry:
        row = QueueEntryModel(**entry.model_dump(exclude={"sequence"}, by_alias=False))
        row.status = entry.status.value
        async with self._session_factory() as db:
            db.add(row)
            await db.commit()
            await db.refresh(row)
            return to_schema(row)

    async def list_by_status(self, status: QueueStatus) -> List[QueueEntry]:
        stmt = (
            select(QueueEntryModel)
            .where(QueueEntryModel.status == status.value)
            .order_by(QueueEntryModel.created_at.asc(), QueueEntryModel.id.asc())
        )
        async with self._session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [to_schema(r) for r in rows]

    async def count_by_status(self, status: QueueStatus) -> int:
        stmt = select(func.count(QueueEntryModel.id)).where(QueueEntryModel.status == status.value)
        async with self._session_factory() as db:
            return (await db.execute(stmt)).scalar_one()

    async def has_active_entry(self, attendee_id: str) -> bool:
        async with self._session_factory() as db:
            return await self._has_active(db, attendee_id)

    @staticmethod
    async def _has_active(db: AsyncSession, attendee_id: str) -> bool:
        stmt = (
            select(QueueEntryModel.id)
            .where(
                QueueEntryModel.attendee_id == attendee_id,
                QueueEntryModel.status.in_([s.value for s in ACTIVE_QUEUE_STATUSES]),
            )
            .limit(1)
        )
        return (await db.execute(stmt)).first() is not None

    async def try_admit(self, entry: QueueEntry, *, max_waiting: int) -> AdmitResult:
        async with self._admit_lock:
            async with self._session_factory() as db:
                try:
                    async with db.begin():
                        if db.bind.dialect.name == "postgresql":
                            await db.execute(
                                text("SELECT pg_advisory_xact_lock(:key)"),
                                {"key": ADMISSION_LOCK_KEY},
                            )

                        waiting = (
                            await db.execute(
                                select(func.count(QueueEntryModel.id)).where(
                                    QueueEntryModel.status == QueueStatus.WAITING.value
                                )
                            )
                        ).scalar_one()
                        if waiting >= max_waiting:
                            return AdmitResult.rejected(AdmitRejection.QUEUE_FULL)

                        if await self._has_active(db, entry.attendee_id):
                            return AdmitResult.rejected(AdmitRejection.ALREADY_QUEUED)

                        row = QueueEntryModel(
                            queue_id=entry.queue_id,
                            attendee_id=entry.attendee_id,
                            name=entry.name,
                            video_url=entry.video_url,
                            status=QueueStatus.WAITING.value,
                            created_at=entry.created_at,
                        )
                        db.add(row)
                        await db.flush()
                        stored = to_schema(row)
                except IntegrityError:
                    logger.warning(
                        f"Concurrent admission for {entry.attendee_id} rejected by unique index"
                    )
                    return AdmitResult.rejected(AdmitRejection.ALREADY_QUEUED)

        return AdmitResult.accepted(stored, position=waiting + 1)

    async def update_status(
        self,
        queue_id: str,
        *,
        expected: QueueStatus,
        status: QueueStatus,
        at: datetime,
    ) -> Optional[QueueEntry]:
        values = {"status": status.value}
        if status == QueueStatus.PLAYING:
            values["played_at"] = at
        else:
            values["completed_at"] = at

        stmt = (
            update(QueueEntryModel)
            .where(
                QueueEntryModel.queue_id == queue_id,
                QueueEntryModel.status == expected.value,
            )
            .values(**values)
            .returning(QueueEntryModel.id)
        )
        async with self._session_factory() as db:
            updated_id = (await db.execute(stmt)).scalar_one_or_none()
            await db.commit()

        if updated_id is None:
            return None
        return await self.get(queue_id)

    async def clear_all(self, *, batch_size: int) -> int:
        async with self._session_factory() as db:
            ids = (await db.execute(select(QueueEntryModel.id))).scalars().all()

        cleared = 0
        for chunk in chunked(ids, batch_size):
            async with self._session_factory() as db:
                await db.execute(delete(QueueEntryModel).where(QueueEntryModel.id.in_(chunk)))
                await db.commit()
            cleared += len(chunk)
            logger.debug(f"Cleared queue batch: {len(chunk)} entries (total: {cleared})")

        return cleared
