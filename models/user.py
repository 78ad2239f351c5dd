# models/user.py
from __future__ import annotations

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base, TimestampMixin, UUIDPrimaryKey


class User(Base, UUIDPrimaryKey, TimestampMixin):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    # issued by the sign-in flow; resolves the caller on API requests
    api_token: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)

    user_profile = relationship("UserProfile", back_populates="user", uselist=False, lazy="selectin")
    github_connection = relationship("GitHubConnection", back_populates="user", uselist=False, lazy="selectin")
