"""
Tests for the SQLAlchemy stores against a throwaway SQLite database
"""
import asyncio

import pytest
import pytest_asyncio
from sqlalchemy.exc import IntegrityError

from checkin_service.core.constants import CheckinMethod, QueueStatus
from checkin_service.core.exceptions import AttendeeExistsError
from checkin_service.crud.base import AdmitRejection
from checkin_service.crud.crud_attendee import CRUDAttendee
from checkin_service.crud.crud_queue import CRUDQueue
from checkin_service.db.session import create_engine_and_sessionmaker, init_db, verify_database_connection
from checkin_service.models.attendee import Attendee as AttendeeModel
from checkin_service.schemas.attendee import AttendeeUpdate, CheckinRecord
from checkin_service.schemas.queue import QueueEntry
from checkin_service.services.admission import AdmissionController

VIDEO = "https://cdn.example.com/videos/vip.mp4"


@pytest_asyncio.fixture
async def sql(tmp_path):
    engine, session_factory = create_engine_and_sessionmaker(f"sqlite+aiosqlite:///{tmp_path / 'checkin.db'}")
    await init_db(engine)
    yield engine, session_factory
    await engine.dispose()


@pytest.fixture
def sql_attendees(sql):
    return CRUDAttendee(sql[1])


@pytest.fixture
def sql_queue(sql):
    return CRUDQueue(sql[1])


async def test_database_probe(sql):
    assert await verify_database_connection(sql[0]) is True


class TestCRUDAttendee:

    async def test_create_get_roundtrip(self, sql_attendees, attendee_factory, clock):
        created = await sql_attendees.create(attendee_factory("VIP_001"), created_at=clock())
        fetched = await sql_attendees.get("VIP_001")

        assert fetched.user_id == created.user_id == "VIP_001"
        assert fetched.is_vip is True
        assert fetched.video_url == VIDEO.replace("vip.mp4", "vip_001.mp4")
        assert fetched.created_at == clock()
        assert fetched.checkin is None
        assert await sql_attendees.get("VIP_404") is None

    async def test_duplicate(self, sql_attendees, attendee_factory, clock):
        await sql_attendees.create(attendee_factory("GUEST_001"), created_at=clock())
        with pytest.raises(AttendeeExistsError):
            await sql_attendees.create(attendee_factory("GUEST_001"), created_at=clock())

    async def test_record_checkin_compare_and_set(self, sql_attendees, attendee_factory, clock):
        await sql_attendees.create(attendee_factory("GUEST_001"), created_at=clock())
        first = CheckinRecord(at=clock(), method=CheckinMethod.QR)

        updated = await sql_attendees.record_checkin("GUEST_001", first, previous_at=None)
        assert updated.checkin == first
        assert updated.checked_in is True

        assert await sql_attendees.record_checkin("GUEST_001", first, previous_at=None) is None

        clock.advance(minutes=7)
        second = CheckinRecord(at=clock(), method=CheckinMethod.AI)
        again = await sql_attendees.record_checkin("GUEST_001", second, previous_at=first.at)
        assert again.checkin == second

    async def test_flag_without_timestamp_is_unrecoverable(self, sql, sql_attendees, clock):
        async with sql[1]() as db:
            db.add(AttendeeModel(user_id="GUEST_009", name="Legacy Row", is_vip=False, checked_in=True, created_at=clock()))
            await db.commit()

        legacy = await sql_attendees.get("GUEST_009")
        assert legacy.checked_in is True
        assert legacy.checkin is None
        assert legacy.checkin_unrecoverable is True

        record = CheckinRecord(at=clock(), method=CheckinMethod.QR)
        assert await sql_attendees.record_checkin("GUEST_009", record, previous_at=None) is None

    async def test_update(self, sql_attendees, attendee_factory, clock):
        await sql_attendees.create(attendee_factory("GUEST_001"), created_at=clock())
        updated = await sql_attendees.update("GUEST_001", AttendeeUpdate(name="Renamed Guest"), updated_at=clock())
        assert updated.name == "Renamed Guest"
        assert await sql_attendees.update("GUEST_404", AttendeeUpdate(name="Nobody Here"), updated_at=clock()) is None

    async def test_listing_counts_and_history_order(self, sql_attendees, attendee_factory, clock):
        for user_id in ("VIP_002", "GUEST_001", "VIP_001", "STAFF_001"):
            await sql_attendees.create(attendee_factory(user_id), created_at=clock())
        for user_id in ("GUEST_001", "VIP_002"):
            clock.advance(minutes=1)
            await sql_attendees.record_checkin(
                user_id, CheckinRecord(at=clock(), method=CheckinMethod.QR), previous_at=None
            )

        assert [a.user_id for a in await sql_attendees.list()] == ["GUEST_001", "STAFF_001", "VIP_001", "VIP_002"]
        assert [a.user_id for a in await sql_attendees.list(limit=2, start_after="GUEST_001")] == ["STAFF_001", "VIP_001"]
        assert [a.user_id for a in await sql_attendees.list_vips()] == ["VIP_001", "VIP_002"]
        assert [a.user_id for a in await sql_attendees.list_checked_in(limit=10)] == ["VIP_002", "GUEST_001"]

        counts = await sql_attendees.counts()
        assert (counts.total_users, counts.total_checked_in, counts.total_vips, counts.vips_checked_in) == (4, 2, 2, 1)

    async def test_batched_reset_and_delete(self, sql_attendees, attendee_factory, clock):
        for i in range(1, 6):
            await sql_attendees.create(attendee_factory(f"GUEST_{i:03d}"), created_at=clock())
            await sql_attendees.record_checkin(
                f"GUEST_{i:03d}", CheckinRecord(at=clock(), method=CheckinMethod.QR), previous_at=None
            )

        assert await sql_attendees.reset_checkins(batch_size=2, updated_at=clock()) == 5
        assert (await sql_attendees.counts()).total_checked_in == 0
        assert (await sql_attendees.get("GUEST_003")).checkin is None

        assert await sql_attendees.delete_all(batch_size=2) == 5
        assert (await sql_attendees.counts()).total_users == 0


class TestCRUDQueue:

    def entry(self, attendee_id, clock):
        return QueueEntry(attendee_id=attendee_id, name=attendee_id, video_url=VIDEO, created_at=clock())

    async def test_admission_rules(self, sql_queue, clock):
        first = await sql_queue.try_admit(self.entry("VIP_001", clock), max_waiting=2)
        assert first.admitted and first.position == 1

        dup = await sql_queue.try_admit(self.entry("VIP_001", clock), max_waiting=2)
        assert dup.rejection == AdmitRejection.ALREADY_QUEUED

        second = await sql_queue.try_admit(self.entry("VIP_002", clock), max_waiting=2)
        assert second.position == 2

        full = await sql_queue.try_admit(self.entry("VIP_003", clock), max_waiting=2)
        assert full.rejection == AdmitRejection.QUEUE_FULL

    async def test_concurrent_admissions_respect_capacity(self, sql_queue, clock):
        results = await asyncio.gather(*[
            sql_queue.try_admit(self.entry(f"VIP_{i:03d}", clock), max_waiting=5)
            for i in range(1, 13)
        ])

        assert sum(1 for r in results if r.admitted) == 5
        assert await sql_queue.count_by_status(QueueStatus.WAITING) == 5

    async def test_unique_index_blocks_second_active_entry(self, sql_queue, clock):
        await sql_queue.add(self.entry("VIP_001", clock))

        # add() skips the admission checks, so only the partial index stands in the way
        with pytest.raises(IntegrityError):
            await sql_queue.add(self.entry("VIP_001", clock))

    async def test_unique_index_ignores_finished_entries(self, sql_queue, clock):
        first = await sql_queue.add(self.entry("VIP_001", clock))
        await sql_queue.update_status(
            first.queue_id, expected=QueueStatus.WAITING, status=QueueStatus.DONE, at=clock()
        )

        again = await sql_queue.try_admit(self.entry("VIP_001", clock), max_waiting=10)
        assert again.admitted

    async def test_ordering_ties_broken_by_insertion(self, sql_queue, clock):
        for attendee_id in ("VIP_003", "VIP_001", "VIP_002"):
            await sql_queue.try_admit(self.entry(attendee_id, clock), max_waiting=10)

        waiting = await sql_queue.list_by_status(QueueStatus.WAITING)
        assert [e.attendee_id for e in waiting] == ["VIP_003", "VIP_001", "VIP_002"]

    async def test_status_compare_and_set(self, sql_queue, clock):
        admitted = await sql_queue.try_admit(self.entry("VIP_001", clock), max_waiting=10)
        queue_id = admitted.entry.queue_id

        clock.advance(seconds=3)
        playing = await sql_queue.update_status(
            queue_id, expected=QueueStatus.WAITING, status=QueueStatus.PLAYING, at=clock()
        )
        assert playing.status == QueueStatus.PLAYING
        assert playing.played_at == clock()
        assert await sql_queue.has_active_entry("VIP_001")

        assert await sql_queue.update_status(
            queue_id, expected=QueueStatus.WAITING, status=QueueStatus.DONE, at=clock()
        ) is None

        done = await sql_queue.update_status(
            queue_id, expected=QueueStatus.PLAYING, status=QueueStatus.DONE, at=clock()
        )
        assert done.completed_at == clock()
        assert not await sql_queue.has_active_entry("VIP_001")

    async def test_clear_in_batches(self, sql_queue, clock):
        for i in range(1, 6):
            await sql_queue.try_admit(self.entry(f"VIP_{i:03d}", clock), max_waiting=10)

        assert await sql_queue.clear_all(batch_size=2) == 5
        assert await sql_queue.list_by_status(QueueStatus.WAITING) == []

    async def test_admission_controller_over_sql(self, sql_queue, clock):
        controller = AdmissionController(sql_queue, max_queue_length=10, now=clock)
        entry = await controller.enqueue("VIP_001", "Ada", VIDEO)

        positioned = await controller.list_with_positions()
        assert [(e.queue_id, e.position) for e in positioned] == [(entry.queue_id, 1)]
