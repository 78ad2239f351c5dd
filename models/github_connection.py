# models/github_connection.py
from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, JSONType, TimestampMixin, UUIDPrimaryKey


class GitHubConnection(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "github_connections"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("users.id"), unique=True, nullable=False
    )
    access_token: Mapped[str] = mapped_column(Text, nullable=False)
    refresh_token: Mapped[str | None] = mapped_column(Text, nullable=True)
    selected_repo: Mapped[str | None] = mapped_column(String(255), nullable=True)
    # "owner/repo" names the user has added to their workspace
    added_repos: Mapped[list] = mapped_column(JSONType, default=list)

    user = relationship("User", back_populates="github_connection")
