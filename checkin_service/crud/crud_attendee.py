# checkin_service/crud/crud_attendee.py
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, delete, func, case, and_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from checkin_service.core.constants import CheckinMethod
from checkin_service.core.exceptions import AttendeeExistsError
from checkin_service.crud.base import AttendeeStore, chunked
from checkin_service.models.attendee import Attendee as AttendeeModel
from checkin_service.schemas.attendee import (
    Attendee,
    AttendeeCreate,
    AttendeeUpdate,
    AttendeeCounts,
    CheckinRecord,
)
from checkin_service.utils.time_utils import ensure_aware

logger = logging.getLogger(__name__)


def to_schema(row: AttendeeModel) -> Attendee:
    """Map a table row onto the domain model, folding the check-in columns into one record."""
    checkin = None
    if row.checked_in_at is not None and row.checked_in_method is not None:
        checkin = CheckinRecord(
            at=ensure_aware(row.checked_in_at),
            method=CheckinMethod(row.checked_in_method),
        )
    return Attendee(
        user_id=row.user_id,
        name=row.name,
        is_vip=bool(row.is_vip),
        seat=row.seat,
        image_url=row.image_url,
        video_url=row.video_url,
        email=row.email,
        phone=row.phone,
        checkin=checkin,
        checkin_unrecoverable=bool(row.checked_in) and checkin is None,
        created_at=ensure_aware(row.created_at),
        updated_at=ensure_aware(row.updated_at),
    )


class CRUDAttendee(AttendeeStore):
    """
    SQL-backed attendee directory.

    Every call opens its own short-lived session from the shared factory.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def get(self, user_id: str) -> Optional[Attendee]:
        async with self._session_factory() as db:
            row = await db.get(AttendeeModel, user_id)
            return to_schema(row) if row else None

    async def create(self, obj_in: AttendeeCreate, *, created_at: datetime) -> Attendee:
        row = AttendeeModel(
            **obj_in.model_dump(by_alias=False),
            checked_in=False,
            created_at=created_at,
            updated_at=created_at,
        )
        async with self._session_factory() as db:
            if await db.get(AttendeeModel, obj_in.user_id) is not None:
                raise AttendeeExistsError(obj_in.user_id)
            db.add(row)
            try:
                await db.commit()
            except IntegrityError:
                await db.rollback()
                raise AttendeeExistsError(obj_in.user_id)
            await db.refresh(row)
            return to_schema(row)

    async def update(
        self, user_id: str, obj_in: AttendeeUpdate, *, updated_at: datetime
    ) -> Optional[Attendee]:
        changes = obj_in.model_dump(exclude_unset=True, by_alias=False)
        async with self._session_factory() as db:
            row = await db.get(AttendeeModel, user_id)
            if row is None:
                return None
            for field, value in changes.items():
                setattr(row, field, value)
            row.updated_at = updated_at
            await db.commit()
            await db.refresh(row)
            return to_schema(row)

    async def list(self, *, limit: Optional[int] = None, start_after: Optional[str] = None) -> List[Attendee]:
        stmt = select(AttendeeModel).order_by(AttendeeModel.user_id)
        if start_after:
            stmt = stmt.where(AttendeeModel.user_id > start_after)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [to_schema(r) for r in rows]

    async def list_vips(self) -> List[Attendee]:
        stmt = (
            select(AttendeeModel)
            .where(AttendeeModel.is_vip.is_(True))
            .order_by(AttendeeModel.user_id)
        )
        async with self._session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [to_schema(r) for r in rows]

    async def list_checked_in(self, *, limit: int) -> List[Attendee]:
        stmt = (
            select(AttendeeModel)
            .where(AttendeeModel.checked_in.is_(True))
            .order_by(AttendeeModel.checked_in_at.desc().nulls_last())
            .limit(limit)
        )
        async with self._session_factory() as db:
            rows = (await db.execute(stmt)).scalars().all()
            return [to_schema(r) for r in rows]

    async def record_checkin(
        self,
        user_id: str,
        record: CheckinRecord,
        *,
        previous_at: Optional[datetime],
    ) -> Optional[Attendee]:
        """Conditional UPDATE so two concurrent check-ins cannot both succeed."""
        stmt = update(AttendeeModel).where(AttendeeModel.user_id == user_id)
        if previous_at is None:
            stmt = stmt.where(
                AttendeeModel.checked_in.is_(False),
                AttendeeModel.checked_in_at.is_(None),
            )
        else:
            stmt = stmt.where(AttendeeModel.checked_in_at == previous_at)

        stmt = stmt.values(
            checked_in=True,
            checked_in_at=record.at,
            checked_in_method=record.method.value,
            updated_at=record.at,
        ).returning(AttendeeModel.user_id)

        async with self._session_factory() as db:
            result = await db.execute(stmt)
            updated_id = result.scalar_one_or_none()
            await db.commit()

        if updated_id is None:
            return None
        return await self.get(updated_id)

    async def counts(self) -> AttendeeCounts:
        def _count_where(condition):
            return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)

        stmt = select(
            func.count(AttendeeModel.user_id),
            _count_where(AttendeeModel.checked_in.is_(True)),
            _count_where(AttendeeModel.is_vip.is_(True)),
            _count_where(and_(AttendeeModel.is_vip.is_(True), AttendeeModel.checked_in.is_(True))),
        )
        async with self._session_factory() as db:
            total, checked_in, vips, vips_checked_in = (await db.execute(stmt)).one()
        return AttendeeCounts(
            total_users=total,
            total_checked_in=checked_in,
            total_vips=vips,
            vips_checked_in=vips_checked_in,
        )

    async def reset_checkins(self, *, batch_size: int, updated_at: datetime) -> int:
        async with self._session_factory() as db:
            user_ids = (
                await db.execute(
                    select(AttendeeModel.user_id).where(AttendeeModel.checked_in.is_(True))
                )
            ).scalars().all()

        if not user_ids:
            logger.info("No checked-in users to reset")
            return 0

        reset_count = 0
        for chunk in chunked(user_ids, batch_size):
            # Each chunk commits on its own; progress made before a failure stays
            async with self._session_factory() as db:
                await db.execute(
                    update(AttendeeModel)
                    .where(AttendeeModel.user_id.in_(chunk))
                    .values(
                        checked_in=False,
                        checked_in_at=None,
                        checked_in_method=None,
                        updated_at=updated_at,
                    )
                )
                await db.commit()
            reset_count += len(chunk)
            logger.debug(f"Reset batch: {len(chunk)} users (total: {reset_count})")

        return reset_count

    async def delete_all(self, *, batch_size: int) -> int:
        async with self._session_factory() as db:
            user_ids = (await db.execute(select(AttendeeModel.user_id))).scalars().all()

        deleted_count = 0
        for chunk in chunked(user_ids, batch_size):
            async with self._session_factory() as db:
                await db.execute(delete(AttendeeModel).where(AttendeeModel.user_id.in_(chunk)))
                await db.commit()
            deleted_count += len(chunk)
            logger.debug(f"Deleted batch: {len(chunk)} users (total: {deleted_count})")

        return deleted_count
