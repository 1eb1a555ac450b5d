from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes read back from storage as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def elapsed_minutes(since: datetime, now: datetime) -> int:
    """Whole minutes between two instants, floor of the millisecond difference."""
    elapsed_ms = int((now - ensure_aware(since)).total_seconds() * 1000)
    return elapsed_ms // 60000
