# checkin_service/core/container.py
"""
Explicit wiring of stores and services.

Built once at startup and attached to `app.state.container`; request
handlers reach components only through the getters in api/deps.py.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncEngine

from checkin_service.core.config import Settings
from checkin_service.crud.base import AttendeeStore, QueueStore
from checkin_service.crud.memory import InMemoryAttendeeStore, InMemoryQueueStore
from checkin_service.services.admin import AdminService
from checkin_service.services.admission import AdmissionController
from checkin_service.services.checkin import CheckinOrchestrator
from checkin_service.services.directory import AttendeeDirectory
from checkin_service.services.recognition import RecognitionClient
from checkin_service.utils.time_utils import utc_now

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    attendee_store: AttendeeStore
    queue_store: QueueStore
    recognition: RecognitionClient
    admission: AdmissionController
    checkin: CheckinOrchestrator
    directory: AttendeeDirectory
    admin: AdminService
    engine: Optional[AsyncEngine] = None

    async def aclose(self) -> None:
        await self.recognition.aclose()
        if self.engine is not None:
            await self.engine.dispose()


def build_container(
    settings: Settings,
    *,
    attendee_store: Optional[AttendeeStore] = None,
    queue_store: Optional[QueueStore] = None,
    recognition: Optional[RecognitionClient] = None,
    engine: Optional[AsyncEngine] = None,
    now: Callable[[], datetime] = utc_now,
) -> ServiceContainer:
    """
    Assemble the service graph.

    Stores default to the in-memory implementations; pass SQL stores (and
    their engine, for health probing and disposal) to run against a database.
    """
    attendee_store = attendee_store or InMemoryAttendeeStore()
    queue_store = queue_store or InMemoryQueueStore()
    recognition = recognition or RecognitionClient(
        base_url=settings.AI_SERVICE_URL,
        timeout=settings.AI_SERVICE_TIMEOUT_SECONDS,
        health_timeout=settings.AI_HEALTH_TIMEOUT_SECONDS,
        api_key=settings.AI_SERVICE_API_KEY,
    )

    admission = AdmissionController(
        queue_store,
        max_queue_length=settings.MAX_QUEUE_LENGTH,
        seconds_per_item=settings.SECONDS_PER_QUEUE_ITEM,
        batch_size=settings.BATCH_WRITE_LIMIT,
        now=now,
    )
    checkin = CheckinOrchestrator(
        attendee_store,
        admission,
        recognition,
        cooldown_minutes=settings.CHECKIN_COOLDOWN_MINUTES,
        default_confidence=settings.AI_DEFAULT_CONFIDENCE,
        now=now,
    )
    directory = AttendeeDirectory(attendee_store, queue_store, now=now)

    store_probe = None
    if engine is not None:
        from checkin_service.db.session import verify_database_connection

        async def store_probe() -> bool:
            return await verify_database_connection(engine)

    admin = AdminService(
        attendee_store,
        directory,
        admission,
        recognition,
        batch_size=settings.BATCH_WRITE_LIMIT,
        store_probe=store_probe,
        now=now,
    )

    return ServiceContainer(
        settings=settings,
        attendee_store=attendee_store,
        queue_store=queue_store,
        recognition=recognition,
        admission=admission,
        checkin=checkin,
        directory=directory,
        admin=admin,
        engine=engine,
    )


async def create_container(settings: Settings) -> ServiceContainer:
    """Build the container for the configured STORAGE_BACKEND, creating tables for SQL."""
    if settings.STORAGE_BACKEND == "sql":
        if not settings.ASYNC_DATABASE_URL:
            raise RuntimeError("DATABASE_URL must be set when STORAGE_BACKEND=sql")

        from checkin_service.crud.crud_attendee import CRUDAttendee
        from checkin_service.crud.crud_queue import CRUDQueue
        from checkin_service.db.session import create_engine_and_sessionmaker, init_db

        engine, session_factory = create_engine_and_sessionmaker(settings.ASYNC_DATABASE_URL)
        await init_db(engine)
        logger.info("Using SQL storage backend")
        return build_container(
            settings,
            attendee_store=CRUDAttendee(session_factory),
            queue_store=CRUDQueue(session_factory),
            engine=engine,
        )

    logger.info("Using in-memory storage backend")
    return build_container(settings)
