"""Database configuration with async SQLAlchemy.

Two partitions are configured: the local partition holding accounts,
courses and their registrations, and the global partition holding the
global ("site admin") account's data. Both default to the same database.
"""

from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
import logging

from .config import get_settings

logger = logging.getLogger(__name__)


_engine = None
_global_engine = None
_async_session_maker = None
_global_session_maker = None


def _create_engine(url: str):
    settings = get_settings()
    return create_async_engine(
        url,
        echo=False,
        future=True,
        pool_size=settings.MAX_CONNECTIONS_COUNT,
        max_overflow=10,
        pool_pre_ping=True,
        pool_recycle=300,
        pool_timeout=10,
    )


def get_engine():
    """Get or create the local partition engine."""
    global _engine
    if _engine is None:
        _engine = _create_engine(str(get_settings().DATABASE_URL))
    return _engine


def get_global_engine():
    """Get or create the global partition engine."""
    global _global_engine
    if _global_engine is None:
        _global_engine = _create_engine(get_settings().GLOBAL_PARTITION_URL)
    return _global_engine


def get_session_maker():
    """Get or create the local async session maker."""
    global _async_session_maker
    if _async_session_maker is None:
        _async_session_maker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _async_session_maker


def get_global_session_maker():
    """Get or create the global partition session maker."""
    global _global_session_maker
    if _global_session_maker is None:
        _global_session_maker = async_sessionmaker(
            get_global_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
        )
    return _global_session_maker


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get a local partition session."""
    async with get_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_global_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency to get a global partition session.

    Always a separate session from get_db() so the two partitions can be
    read concurrently within one request.
    """
    async with get_global_session_maker()() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def init_db() -> None:
    """Initialize database - migrations must be run separately."""
    from models import account, lti  # noqa

    logger.info("Database initialization - relying on migrations")
    logger.info("Run migrations with: alembic -c migrations/alembic.ini upgrade head")


async def close_db() -> None:
    """Close database connections."""
    if _engine is not None:
        await _engine.dispose()
    if _global_engine is not None:
        await _global_engine.dispose()
