"""
Database Connection Module
Handles the async SQLAlchemy engine used by the SQL order repository.

The engine is created lazily so the in-memory backend (development and
tests) never needs a database driver.
"""

from functools import lru_cache
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from kitchenflow.core.config import get_settings


# Base class for all our models
class Base(DeclarativeBase):
    pass


@lru_cache()
def get_engine() -> AsyncEngine:
    """Create the async engine for the configured DATABASE_URL."""
    settings = get_settings()
    options = {"echo": settings.database_echo}
    if settings.database_url.startswith("postgresql"):
        options.update(
            pool_size=5,  # Connection pool size
            max_overflow=10,  # Extra connections when pool is full
        )
    return create_async_engine(settings.database_url, **options)


@lru_cache()
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the shared engine."""
    return async_sessionmaker(
        bind=get_engine(),
        class_=AsyncSession,
        expire_on_commit=False,  # Objects remain accessible after commit
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


async def init_db(engine: AsyncEngine | None = None) -> None:
    """
    Create all tables in database.
    Called once at application startup when the SQL backend is active.
    """
    # Registers the tables on Base.metadata
    import kitchenflow.models  # noqa: F401

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close pooled connections if the engine was ever created."""
    if get_engine.cache_info().currsize:
        await get_engine().dispose()
        get_engine.cache_clear()
        get_session_maker.cache_clear()
