# checkin_service/crud/base.py
"""
Storage interfaces for attendees and queue entries.

Two implementations exist: in-process (crud.memory) and SQL
(crud.crud_attendee / crud.crud_queue). Services depend only on these
interfaces and receive a concrete store at construction time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional, Sequence, TypeVar

from checkin_service.core.constants import QueueStatus
from checkin_service.schemas.attendee import (
    Attendee,
    AttendeeCreate,
    AttendeeUpdate,
    AttendeeCounts,
    CheckinRecord,
)
from checkin_service.schemas.queue import QueueEntry

T = TypeVar("T")


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Split items into consecutive slices of at most `size` elements."""
    for start in range(0, len(items), size):
        yield items[start:start + size]


class AdmitRejection:
    QUEUE_FULL = "QUEUE_FULL"
    ALREADY_QUEUED = "ALREADY_IN_QUEUE"


@dataclass(frozen=True)
class AdmitResult:
    """Outcome of an atomic capacity + duplicate check followed by insert."""

    entry: Optional[QueueEntry] = None
    position: Optional[int] = None
    rejection: Optional[str] = None

    @property
    def admitted(self) -> bool:
        return self.entry is not None

    @classmethod
    def accepted(cls, entry: QueueEntry, position: int) -> "AdmitResult":
        return cls(entry=entry, position=position)

    @classmethod
    def rejected(cls, reason: str) -> "AdmitResult":
        return cls(rejection=reason)


class AttendeeStore(ABC):
    """Attendee records keyed by their unique identifier."""

    @abstractmethod
    async def get(self, user_id: str) -> Optional[Attendee]:
        ...

    @abstractmethod
    async def create(self, obj_in: AttendeeCreate, *, created_at: datetime) -> Attendee:
        """Insert a new attendee. Raises AttendeeExistsError on a taken identifier."""

    @abstractmethod
    async def update(
        self, user_id: str, obj_in: AttendeeUpdate, *, updated_at: datetime
    ) -> Optional[Attendee]:
        ...

    @abstractmethod
    async def list(self, *, limit: Optional[int] = None, start_after: Optional[str] = None) -> List[Attendee]:
        """Attendees ordered by identifier, optionally paged."""

    @abstractmethod
    async def list_vips(self) -> List[Attendee]:
        ...

    @abstractmethod
    async def list_checked_in(self, *, limit: int) -> List[Attendee]:
        """Checked-in attendees, most recent check-in first."""

    @abstractmethod
    async def record_checkin(
        self,
        user_id: str,
        record: CheckinRecord,
        *,
        previous_at: Optional[datetime],
    ) -> Optional[Attendee]:
        """
        Store a check-in only if the attendee's last check-in time still equals
        `previous_at` (None meaning "never checked in").

        Returns the updated attendee, or None when the record changed underneath.
        """

    @abstractmethod
    async def counts(self) -> AttendeeCounts:
        ...

    @abstractmethod
    async def reset_checkins(self, *, batch_size: int, updated_at: datetime) -> int:
        """Clear check-in state of every checked-in attendee in chunked writes."""

    @abstractmethod
    async def delete_all(self, *, batch_size: int) -> int:
        ...


class QueueStore(ABC):
    """Playback queue entries keyed by generated queue id."""

    @abstractmethod
    async def get(self, queue_id: str) -> Optional[QueueEntry]:
        ...

    @abstractmethod
    async def add(self, entry: QueueEntry) -> QueueEntry:
        """Append without any admission checks."""

    @abstractmethod
    async def list_by_status(self, status: QueueStatus) -> List[QueueEntry]:
        """Entries with the given status, oldest first (insertion order on ties)."""

    @abstractmethod
    async def count_by_status(self, status: QueueStatus) -> int:
        ...

    @abstractmethod
    async def has_active_entry(self, attendee_id: str) -> bool:
        """True if the attendee has a WAITING or PLAYING entry."""

    @abstractmethod
    async def try_admit(self, entry: QueueEntry, *, max_waiting: int) -> AdmitResult:
        """
        Atomically check capacity (WAITING count < max_waiting), then the
        duplicate rule, then insert. Capacity is checked first.
        """

    @abstractmethod
    async def update_status(
        self,
        queue_id: str,
        *,
        expected: QueueStatus,
        status: QueueStatus,
        at: datetime,
    ) -> Optional[QueueEntry]:
        """
        Compare-and-set the status, stamping played_at (PLAYING) or
        completed_at (DONE/ERROR). Returns None if the entry is no longer in
        `expected` status.
        """

    @abstractmethod
    async def clear_all(self, *, batch_size: int) -> int:
        """Delete every entry regardless of status, in chunked writes."""
