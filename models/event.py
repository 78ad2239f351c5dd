# models/event.py
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKey


class Event(Base, UUIDPrimaryKey, TimestampMixin):
    """Audit trail: enqueues, cron drains, key changes."""

    __tablename__ = "events"
    __table_args__ = (Index("ix_events_event_type_created_at", "event_type", "created_at"),)

    event_type: Mapped[str] = mapped_column(String(128), nullable=False)
    level: Mapped[str] = mapped_column(String(16), default="info")  # debug | info | warn | error
    source: Mapped[str | None] = mapped_column(String(128), nullable=True)
    message: Mapped[str | None] = mapped_column(Text, nullable=True)

    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), ForeignKey("users.id"), nullable=True)
    # no FK: finished jobs are purged, their events stay
    job_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)

    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONType, nullable=True)
