"""Async SQLAlchemy engine and request-scoped sessions."""

import logging
from collections.abc import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from elk.core.settings import DatabaseSettings

logger = logging.getLogger(__name__)


class _EngineHolder:
    """Lazily created engine shared by every request in the process."""

    engine: AsyncEngine | None = None
    factory: async_sessionmaker[AsyncSession] | None = None


_holder = _EngineHolder()


def _get_session_factory() -> async_sessionmaker[AsyncSession]:
    if _holder.factory is None:
        db = DatabaseSettings()
        _holder.engine = create_async_engine(
            db.async_url,
            pool_size=db.pool_size,
            max_overflow=db.max_overflow,
            pool_pre_ping=True,
        )
        _holder.factory = async_sessionmaker(
            _holder.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info(
            "Database engine created for %s:%s/%s", db.host, db.port, db.database
        )
    return _holder.factory


async def dispose_engine() -> None:
    """Close pooled connections; called on application shutdown."""
    if _holder.engine is not None:
        await _holder.engine.dispose()
    _holder.engine = None
    _holder.factory = None


async def get_session() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency yielding a session committed at request end."""
    factory = _get_session_factory()
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
