# db/engine.py
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from api.app.config import get_settings

_engine: AsyncEngine | None = None


def build_engine(url: str, echo: bool = False) -> AsyncEngine:
    if url.startswith("sqlite"):
        # no pool sizing for SQLite
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        pool_size=10,
        max_overflow=20,
        pool_pre_ping=True,
        echo=echo,
    )


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        _engine = build_engine(get_settings().database_url)
    return _engine


async def dispose_engine() -> None:
    """Close pooled connections (API shutdown, worker exit)."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
