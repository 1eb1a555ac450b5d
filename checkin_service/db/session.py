# checkin_service/db/session.py
import logging
from typing import Tuple

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from checkin_service.db.base_class import Base

logger = logging.getLogger(__name__)


def create_engine_and_sessionmaker(
    database_url: str,
) -> Tuple[AsyncEngine, async_sessionmaker[AsyncSession]]:
    """
    Build the async engine and the session factory handed to the SQL stores.

    Called once at startup; the factory is shared by every request.
    """
    engine = create_async_engine(database_url, echo=False, pool_pre_ping=True)
    session_factory = async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False
    )
    return engine, session_factory


async def init_db(engine: AsyncEngine) -> None:
    """Create tables if they do not exist yet."""
    # Import models to register them with Base.metadata
    from checkin_service.models import attendee, queue_entry  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables checked and created if necessary")


async def verify_database_connection(engine: AsyncEngine) -> bool:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False
