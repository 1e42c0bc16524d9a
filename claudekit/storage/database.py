"""Async SQLite engine holding mode preferences and invocation history."""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from claudekit.exceptions import StorageError

from .models import Base

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_database(db_path: str) -> None:
    """Open the database at db_path and create missing tables.

    Any previously opened engine is disposed first.
    """
    global _engine, _session_factory

    if _engine is not None:
        await close_database()

    if db_path != MEMORY_PATH:
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    _engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}", echo=False)
    _session_factory = async_sessionmaker(_engine, expire_on_commit=False)

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info(f"Database ready at {db_path}")


async def close_database() -> None:
    """Dispose of the engine."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None


@asynccontextmanager
async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Session that commits on success and rolls back on error.

    Raises:
        StorageError: If init_database has not been called.
    """
    if _session_factory is None:
        raise StorageError("Database not initialized")

    async with _session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
