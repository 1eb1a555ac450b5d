# checkin_service/schemas/checkin.py
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from checkin_service.core.constants import CheckinMethod
from checkin_service.schemas.attendee import Attendee
from checkin_service.schemas.queue import QueueOutcome, PositionedQueueEntry


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================
# Requests
# ============================================


class IdentifierCheckinRequest(_CamelModel):
    """QR and manual check-in body."""

    user_id: str = Field(min_length=1)


class AICheckinRequest(_CamelModel):
    """AI check-in body. Either a pre-matched userId or a base64 image."""

    user_id: Optional[str] = None
    image_base64: Optional[str] = Field(default=None, min_length=100)
    confidence: Optional[float] = Field(default=None, ge=0, le=1)


# ============================================
# Recognition
# ============================================


class RecognitionResult(_CamelModel):
    """Best match returned by the recognition service."""

    user_id: str
    name: Optional[str] = None
    confidence: float = 0.0
    house: str = ""
    processing_time_ms: int = 0
    detected_faces: Optional[int] = None
    recognized_faces: Optional[int] = None


class AIRecognitionInfo(_CamelModel):
    confidence: float
    processing_time_ms: int
    detected_faces: Optional[int] = None
    recognized_faces: Optional[int] = None


class RecognitionHealth(_CamelModel):
    available: bool
    status: Optional[str] = None
    model_loaded: bool = False
    database_size: int = 0
    error: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, protected_namespaces=()
    )


# ============================================
# Results
# ============================================


class CheckinResult(_CamelModel):
    attendee: Attendee
    checkin_method: CheckinMethod
    timestamp: datetime
    confidence: Optional[float] = None
    ai_recognition: Optional[AIRecognitionInfo] = None
    # None when the attendee is not a VIP with a video
    queue_outcome: Optional[QueueOutcome] = None

    @property
    def queue(self) -> Optional[PositionedQueueEntry]:
        if self.queue_outcome and self.queue_outcome.is_queued:
            return self.queue_outcome.entry
        return None


class HistoryItem(_CamelModel):
    user_id: str
    name: str
    seat: Optional[str] = None
    is_vip: bool = Field(alias="isVIP")
    method: Optional[CheckinMethod] = None
    checked_in_at: Optional[datetime] = None

    @classmethod
    def from_attendee(cls, attendee: Attendee) -> "HistoryItem":
        return cls(
            user_id=attendee.user_id,
            name=attendee.name,
            seat=attendee.seat,
            is_vip=attendee.is_vip,
            method=attendee.checkin.method if attendee.checkin else None,
            checked_in_at=attendee.checkin.at if attendee.checkin else None,
        )


class CheckinHistory(_CamelModel):
    history: List[HistoryItem]
    total: int
