"""
Unit tests for the playback queue admission controller
"""
import pytest

from checkin_service.core.constants import QueueStatus
from checkin_service.core.exceptions import (
    QueueFullError,
    AlreadyQueuedError,
    InvalidMediaError,
    InvalidTransitionError,
    QueueEntryNotFoundError,
)
from checkin_service.services.admission import AdmissionController

VIDEO = "https://cdn.example.com/videos/vip.mp4"


async def fill_queue(admission, count, start=1):
    entries = []
    for i in range(start, start + count):
        entries.append(await admission.enqueue(f"VIP_{i:03d}", f"Guest {i}", VIDEO))
    return entries


class TestEnqueue:
    """Tests for admission rules"""

    async def test_first_entry_is_waiting_at_position_one(self, admission, clock):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)

        assert entry.status == QueueStatus.WAITING
        assert entry.position == 1
        assert entry.estimated_wait_time == 30
        assert entry.created_at == clock()
        assert entry.queue_id.startswith("q_")
        assert entry.played_at is None and entry.completed_at is None

    async def test_positions_append_to_tail(self, admission):
        entries = await fill_queue(admission, 3)
        assert [e.position for e in entries] == [1, 2, 3]

    async def test_queue_full_rejects_next_admission(self, admission, queue_store):
        await fill_queue(admission, 10)

        with pytest.raises(QueueFullError) as exc_info:
            await admission.enqueue("VIP_011", "Late", VIDEO)

        assert exc_info.value.error_code == "QUEUE_FULL"
        assert await queue_store.count_by_status(QueueStatus.WAITING) == 10

    async def test_duplicate_active_entry_rejected(self, admission):
        await admission.enqueue("VIP_001", "Ada", VIDEO)

        with pytest.raises(AlreadyQueuedError):
            await admission.enqueue("VIP_001", "Ada", VIDEO)

    async def test_duplicate_rejected_while_playing(self, admission):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)
        await admission.mark_playing(entry.queue_id)

        with pytest.raises(AlreadyQueuedError):
            await admission.enqueue("VIP_001", "Ada", VIDEO)

    async def test_readmission_allowed_after_terminal_status(self, admission):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)
        await admission.mark_playing(entry.queue_id)
        await admission.mark_done(entry.queue_id)

        again = await admission.enqueue("VIP_001", "Ada", VIDEO)
        assert again.queue_id != entry.queue_id
        assert again.position == 1

    @pytest.mark.parametrize("url", [None, "", "not a url", "ftp://cdn.example.com/v.mp4", "javascript:alert(1)"])
    async def test_invalid_video_url_rejected(self, admission, queue_store, url):
        with pytest.raises(InvalidMediaError) as exc_info:
            await admission.enqueue("VIP_001", "Ada", url)

        assert exc_info.value.error_code == "INVALID_VIDEO_URL"
        assert await queue_store.count_by_status(QueueStatus.WAITING) == 0

    async def test_http_url_accepted(self, admission):
        entry = await admission.enqueue("VIP_001", "Ada", "http://localhost:8080/media/ada.mp4")
        assert entry.video_url == "http://localhost:8080/media/ada.mp4"

    async def test_capacity_checked_before_duplicate(self, admission):
        await fill_queue(admission, 10)

        # VIP_001 is already queued, but the full queue is reported first
        with pytest.raises(QueueFullError):
            await admission.enqueue("VIP_001", "Guest 1", VIDEO)

    async def test_duplicate_checked_before_url(self, admission):
        await admission.enqueue("VIP_001", "Ada", VIDEO)

        with pytest.raises(AlreadyQueuedError):
            await admission.enqueue("VIP_001", "Ada", "not a url")

    async def test_capacity_checked_before_url(self, admission):
        await fill_queue(admission, 10)

        with pytest.raises(QueueFullError):
            await admission.enqueue("VIP_020", "Late", "not a url")

    async def test_playing_entries_do_not_count_toward_capacity(self, admission):
        entries = await fill_queue(admission, 10)
        await admission.mark_playing(entries[0].queue_id)

        entry = await admission.enqueue("VIP_011", "Next", VIDEO)
        assert entry.position == 10

    async def test_waiting_count_never_exceeds_limit(self, admission, queue_store):
        for i in range(1, 16):
            try:
                await admission.enqueue(f"VIP_{i:03d}", f"Guest {i}", VIDEO)
            except QueueFullError:
                pass
            assert await queue_store.count_by_status(QueueStatus.WAITING) <= 10

    async def test_custom_limit(self, queue_store, clock):
        small = AdmissionController(queue_store, max_queue_length=2, now=clock)
        await small.enqueue("VIP_001", "A", VIDEO)
        await small.enqueue("VIP_002", "B", VIDEO)

        with pytest.raises(QueueFullError) as exc_info:
            await small.enqueue("VIP_003", "C", VIDEO)
        assert "max 2" in exc_info.value.message


class TestListWithPositions:
    """Tests for queue listing"""

    async def test_empty_queue(self, admission):
        assert await admission.list_with_positions() == []

    async def test_ordered_by_creation_time(self, admission, clock):
        await admission.enqueue("VIP_001", "First", VIDEO)
        clock.advance(seconds=5)
        await admission.enqueue("VIP_002", "Second", VIDEO)
        clock.advance(seconds=5)
        await admission.enqueue("VIP_003", "Third", VIDEO)

        queue = await admission.list_with_positions()

        assert [e.attendee_id for e in queue] == ["VIP_001", "VIP_002", "VIP_003"]
        assert [e.position for e in queue] == [1, 2, 3]
        assert [e.estimated_wait_time for e in queue] == [30, 60, 90]
        created = [e.created_at for e in queue]
        assert created == sorted(created)

    async def test_identical_timestamps_keep_insertion_order(self, admission):
        # The clock does not move between admissions
        await fill_queue(admission, 4)

        queue = await admission.list_with_positions()
        assert [e.attendee_id for e in queue] == ["VIP_001", "VIP_002", "VIP_003", "VIP_004"]

    async def test_positions_close_gaps_after_playback(self, admission, clock):
        entries = await fill_queue(admission, 3)
        await admission.mark_playing(entries[0].queue_id)

        queue = await admission.list_with_positions()

        assert [e.attendee_id for e in queue] == ["VIP_002", "VIP_003"]
        assert [e.position for e in queue] == [1, 2]

    async def test_listing_is_non_destructive(self, admission):
        await fill_queue(admission, 2)
        first = await admission.list_with_positions()
        second = await admission.list_with_positions()
        assert first == second

    async def test_next_entry(self, admission):
        assert await admission.next_entry() is None
        await fill_queue(admission, 2)

        nxt = await admission.next_entry()
        assert nxt.attendee_id == "VIP_001"
        assert nxt.position == 1


class TestTransitions:
    """Tests for the playback state machine"""

    async def test_full_lifecycle_stamps_times(self, admission, clock):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)

        clock.advance(seconds=10)
        playing = await admission.mark_playing(entry.queue_id)
        assert playing.status == QueueStatus.PLAYING
        assert playing.played_at == clock()

        clock.advance(seconds=30)
        done = await admission.mark_done(entry.queue_id)
        assert done.status == QueueStatus.DONE
        assert done.completed_at == clock()
        assert done.played_at == playing.played_at

    async def test_playing_to_error(self, admission):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)
        await admission.mark_playing(entry.queue_id)

        failed = await admission.mark_error(entry.queue_id)
        assert failed.status == QueueStatus.ERROR
        assert failed.completed_at is not None

    @pytest.mark.parametrize("target", [QueueStatus.DONE, QueueStatus.ERROR])
    async def test_waiting_may_finish_directly(self, admission, target):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)

        finished = await admission.transition(entry.queue_id, target)
        assert finished.status == target
        assert finished.played_at is None

    @pytest.mark.parametrize("terminal", [QueueStatus.DONE, QueueStatus.ERROR])
    @pytest.mark.parametrize("target", list(QueueStatus))
    async def test_terminal_states_are_final(self, admission, terminal, target):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)
        await admission.transition(entry.queue_id, terminal)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await admission.transition(entry.queue_id, target)

        assert exc_info.value.current == terminal.value
        assert exc_info.value.error_code == "INVALID_TRANSITION"

    async def test_playing_cannot_return_to_waiting(self, admission):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)
        await admission.mark_playing(entry.queue_id)

        with pytest.raises(InvalidTransitionError):
            await admission.transition(entry.queue_id, QueueStatus.WAITING)
        with pytest.raises(InvalidTransitionError):
            await admission.mark_playing(entry.queue_id)

    async def test_unknown_entry(self, admission):
        with pytest.raises(QueueEntryNotFoundError):
            await admission.mark_playing("q_doesnotexist")

    async def test_lost_race_reports_fresh_state(self, admission, queue_store, clock):
        entry = await admission.enqueue("VIP_001", "Ada", VIDEO)
        stale = await queue_store.get(entry.queue_id)

        await admission.mark_done(entry.queue_id)

        # A second consumer holding the stale WAITING snapshot loses the compare-and-set
        updated = await queue_store.update_status(
            entry.queue_id, expected=stale.status, status=QueueStatus.PLAYING, at=clock()
        )
        assert updated is None


class TestClearAndStats:
    """Tests for clear and stats"""

    async def test_clear_removes_all_statuses(self, admission, queue_store):
        entries = await fill_queue(admission, 3)
        await admission.mark_playing(entries[0].queue_id)
        await admission.mark_done(entries[0].queue_id)

        removed = await admission.clear()

        assert removed == 3
        assert await admission.list_with_positions() == []
        assert await queue_store.get(entries[0].queue_id) is None

    async def test_clear_in_small_batches(self, queue_store, clock):
        controller = AdmissionController(queue_store, max_queue_length=10, batch_size=3, now=clock)
        await fill_queue(controller, 7)

        assert await controller.clear() == 7
        assert await queue_store.count_by_status(QueueStatus.WAITING) == 0

    async def test_stats_empty(self, admission):
        stats = await admission.stats()
        assert stats.queue_length == 0
        assert stats.total_wait_time == 0
        assert stats.average_wait_time == 0
        assert stats.oldest_item_time is None

    async def test_stats(self, admission, clock):
        start = clock()
        await admission.enqueue("VIP_001", "A", VIDEO)
        clock.advance(seconds=1)
        await admission.enqueue("VIP_002", "B", VIDEO)

        stats = await admission.stats()
        assert stats.queue_length == 2
        assert stats.total_wait_time == 60
        assert stats.average_wait_time == 30
        assert stats.oldest_item_time == start
