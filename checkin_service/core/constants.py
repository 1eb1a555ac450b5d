# checkin_service/core/constants.py
from enum import Enum


class CheckinMethod(str, Enum):
    AI = "AI"
    QR = "QR"
    MANUAL = "MANUAL"


class QueueStatus(str, Enum):
    """Playback status of a queue entry on the venue display."""

    WAITING = "WAITING"
    PLAYING = "PLAYING"
    DONE = "DONE"
    ERROR = "ERROR"


ACTIVE_QUEUE_STATUSES = (QueueStatus.WAITING, QueueStatus.PLAYING)

# Allowed moves of the playback state machine. WAITING -> DONE/ERROR lets the
# display driver drop an entry it could never start.
QUEUE_TRANSITIONS = {
    QueueStatus.WAITING: {QueueStatus.PLAYING, QueueStatus.DONE, QueueStatus.ERROR},
    QueueStatus.PLAYING: {QueueStatus.DONE, QueueStatus.ERROR},
    QueueStatus.DONE: set(),
    QueueStatus.ERROR: set(),
}

USER_ID_PATTERN = r"^(VIP|STAFF|GUEST)_\d{3}$"
SEAT_PATTERN = r"^[A-Z]\d{1,2}$"
PHONE_PATTERN = r"^[0-9]{10}$"

DEFAULT_HISTORY_LIMIT = 50
