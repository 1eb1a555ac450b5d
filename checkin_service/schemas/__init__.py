from checkin_service.schemas.attendee import (
    Attendee,
    AttendeeCreate,
    AttendeeUpdate,
    AttendeeSummary,
    AttendeeCounts,
    AttendeeStats,
    CheckinRecord,
)
from checkin_service.schemas.queue import (
    QueueEntry,
    PositionedQueueEntry,
    QueueStats,
    QueueOutcome,
)
from checkin_service.schemas.checkin import (
    AICheckinRequest,
    IdentifierCheckinRequest,
    RecognitionResult,
    RecognitionHealth,
    AIRecognitionInfo,
    CheckinResult,
    HistoryItem,
    CheckinHistory,
)
from checkin_service.schemas.admin import (
    SystemStats,
    QueueClearResult,
    ResetCheckinsResult,
    ResetDataResult,
    HealthReport,
)

__all__ = [
    "Attendee",
    "AttendeeCreate",
    "AttendeeUpdate",
    "AttendeeSummary",
    "AttendeeCounts",
    "AttendeeStats",
    "CheckinRecord",
    "QueueEntry",
    "PositionedQueueEntry",
    "QueueStats",
    "QueueOutcome",
    "AICheckinRequest",
    "IdentifierCheckinRequest",
    "RecognitionResult",
    "RecognitionHealth",
    "AIRecognitionInfo",
    "CheckinResult",
    "HistoryItem",
    "CheckinHistory",
    "SystemStats",
    "QueueClearResult",
    "ResetCheckinsResult",
    "ResetDataResult",
    "HealthReport",
]
