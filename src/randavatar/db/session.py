"""Async database session management.

The engine is created on first use so that importing the package never
opens a connection or requires a driver for a database we do not talk to.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from randavatar.config import settings

_engine: AsyncEngine | None = None
_sessionmaker: async_sessionmaker[AsyncSession] | None = None


def create_engine(database_url: str) -> AsyncEngine:
    """Build an engine, with pool sizing only where the driver pools."""
    if database_url.startswith("sqlite"):
        return create_async_engine(database_url, future=True)
    return create_async_engine(
        database_url,
        pool_size=5,
        max_overflow=10,
        pool_timeout=int(settings.store_timeout_s),
        pool_recycle=3600,
        pool_pre_ping=True,
        future=True,
    )


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = create_engine(settings.database_url)
    return _engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    global _sessionmaker
    if _sessionmaker is None:
        _sessionmaker = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,  # records outlive their session
            autoflush=False,
        )
    return _sessionmaker


async def init_db() -> None:
    """Create tables from models. Production uses Alembic migrations."""
    from randavatar.db.models import Base

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Clean shutdown: dispose of all connections."""
    global _engine, _sessionmaker
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessionmaker = None
