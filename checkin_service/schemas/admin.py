# checkin_service/schemas/admin.py
from datetime import datetime
from typing import Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from checkin_service.schemas.attendee import AttendeeStats
from checkin_service.schemas.queue import QueueStats


class _AdminModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SystemStats(_AdminModel):
    users: AttendeeStats
    queue: QueueStats
    timestamp: datetime


class QueueClearResult(_AdminModel):
    items_cleared: int


class ResetCheckinsResult(_AdminModel):
    reset_count: int
    total_users: int
    queue_cleared: int
    message: str


class ResetDataResult(_AdminModel):
    queue_cleared: int
    users_deleted: int
    message: str


class HealthReport(_AdminModel):
    status: str  # "ok" | "degraded"
    timestamp: datetime
    uptime_seconds: float
    services: Dict[str, str]
