"""
Database Connection Module
Handles the async SQLAlchemy engine (PostgreSQL via psycopg in deployment,
SQLite via aiosqlite in tests) and request-scoped sessions.
"""

import logging
from datetime import datetime, timezone
from functools import lru_cache
from typing import AsyncIterator, Optional

from sqlalchemy import DateTime
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from restaurant_app.core.config import get_settings

logger = logging.getLogger(__name__)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware timestamp stored as UTC.

    SQLite drops tzinfo on the way back, so values are re-tagged as UTC on
    load; naive values on the way in are assumed to already be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    def process_result_value(self, value: Optional[datetime], dialect) -> Optional[datetime]:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


# Base class for all our models
class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine() -> AsyncEngine:
    """
    Create the async engine once per process.

    Pool sizing only applies to server databases; SQLite uses its own pool.
    """
    settings = get_settings()
    url = make_url(settings.database_url)

    kwargs = {"echo": settings.database_echo}
    if url.get_backend_name() != "sqlite":
        kwargs.update(pool_size=5, max_overflow=10, pool_pre_ping=True)

    logger.info(f"Database engine created for {url.render_as_string(hide_password=True)}")
    return create_async_engine(url, **kwargs)


@lru_cache()
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the process engine."""
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False  # Objects remain accessible after commit
    )


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    Dependency injection for FastAPI routes.
    Yields a database session and ensures cleanup.
    """
    async with get_session_maker()() as session:
        try:
            yield session
        finally:
            await session.close()


async def init_db(engine: Optional[AsyncEngine] = None) -> None:
    """
    Create all tables in database.
    Called once at application startup.
    """
    # Import models so their tables are registered on Base.metadata
    from restaurant_app import models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created successfully")


async def dispose_engine() -> None:
    """Close pooled connections on shutdown."""
    await get_engine().dispose()
    get_session_maker.cache_clear()
    get_engine.cache_clear()
