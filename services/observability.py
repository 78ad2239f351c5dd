# services/observability.py
"""
Audit events persisted to the events table (enqueues, cron drains, key changes).
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from models.event import Event

logger = logging.getLogger(__name__)

LEVELS = {"debug", "info", "warn", "error"}


async def log_event(
    db: AsyncSession,
    event_type: str,
    level: str = "info",
    source: str | None = None,
    message: str | None = None,
    metadata: dict | None = None,
    user_id: uuid.UUID | None = None,
    job_id: uuid.UUID | None = None,
) -> Event:
    """Add an event row to the caller's session and mirror it to the process log."""
    if level not in LEVELS:
        level = "info"

    event = Event(
        event_type=event_type,
        level=level,
        source=source,
        message=message,
        user_id=user_id,
        job_id=job_id,
        metadata_=metadata,
    )
    db.add(event)
    await db.flush()

    log_level = logging.WARNING if level == "warn" else getattr(logging, level.upper())
    logger.log(log_level, "[%s] %s %s", event_type, message or "", metadata or {})
    return event
