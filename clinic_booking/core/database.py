"""Async engine, session factory and unit-of-work helpers."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from clinic_booking.config import get_settings
from clinic_booking.core.models import Base

logger = logging.getLogger(__name__)


@lru_cache
def _get_engine() -> AsyncEngine:
    settings = get_settings()
    if settings.is_sqlite:
        # aiosqlite runs on its own thread; QueuePool sizing does not apply.
        return create_async_engine(settings.database_url, echo=settings.db_echo)
    return create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=True,
        echo=settings.db_echo,
    )


@lru_cache
def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(_get_engine(), class_=AsyncSession, expire_on_commit=False)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """One unit of work: commit on success, roll back on any error."""
    async with _get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency: a session per request."""
    async with session_scope() as session:
        yield session


async def init_db() -> None:
    """Create missing tables and indexes. Existing tables are left alone."""
    engine = _get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Booking schema ready at %s", engine.url.render_as_string(hide_password=True))


async def ping_db() -> str:
    """Run ``SELECT 1`` and return the backend name (``sqlite``, ``postgresql``)."""
    engine = _get_engine()
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    return engine.dialect.name


async def dispose_engine() -> None:
    """Close pooled connections; the next call builds a fresh engine."""
    if _get_engine.cache_info().currsize:
        await _get_engine().dispose()
        _get_session_factory.cache_clear()
        _get_engine.cache_clear()
