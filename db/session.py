# db/session.py
"""
Session factories.

Stores (JobQueue, ProfileStore, ...) take a factory and open one short
session per operation; request handlers get a session from `get_db`.
"""
from __future__ import annotations

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from db.engine import get_engine

_session_factory: async_sessionmaker[AsyncSession] | None = None


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # rows stay readable after commit; stores hand them back to callers
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: commit on success, roll back on error."""
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
