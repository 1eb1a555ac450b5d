# checkin_service/schemas/queue.py
import uuid
from datetime import datetime
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkin_service.core.constants import QueueStatus


def generate_queue_id() -> str:
    return f"q_{uuid.uuid4().hex[:12]}"


class QueueEntry(BaseModel):
    """A VIP's pending video playback slot."""

    queue_id: str = Field(default_factory=generate_queue_id)
    attendee_id: str = Field(alias="userId")
    name: str
    video_url: str
    status: QueueStatus = QueueStatus.WAITING
    created_at: datetime
    played_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    # Insertion order, used to break created_at ties
    sequence: int = Field(default=0, exclude=True)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PositionedQueueEntry(QueueEntry):
    position: int
    estimated_wait_time: int  # seconds


class QueueStats(BaseModel):
    queue_length: int
    total_wait_time: int  # seconds
    average_wait_time: float
    oldest_item_time: Optional[datetime] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class QueueOutcome(BaseModel):
    """
    Secondary result of a check-in: whether the VIP's video got a slot.

    A skipped outcome never undoes the check-in; it only records why the
    attendee was not admitted to the playback queue.
    """

    status: Literal["queued", "skipped"]
    entry: Optional[PositionedQueueEntry] = None
    reason: Optional[str] = None
    message: Optional[str] = None

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @classmethod
    def queued(cls, entry: PositionedQueueEntry) -> "QueueOutcome":
        return cls(status="queued", entry=entry)

    @classmethod
    def skipped(cls, reason: str, message: str) -> "QueueOutcome":
        return cls(status="skipped", reason=reason, message=message)

    @property
    def is_queued(self) -> bool:
        return self.status == "queued"
