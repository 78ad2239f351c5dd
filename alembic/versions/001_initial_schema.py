"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # ── users ──
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), unique=True, nullable=True),
        sa.Column("api_token", sa.String(255), unique=True, nullable=False),
        *_timestamps(),
    )

    # ── user_profiles ──
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), unique=True, nullable=False),
        sa.Column("openai_api_key", sa.Text, nullable=True),
        sa.Column("openai_key_added_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("total_tokens", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_cost", sa.Float, server_default="0", nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    # ── github_connections ──
    op.create_table(
        "github_connections",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), unique=True, nullable=False),
        sa.Column("access_token", sa.Text, nullable=False),
        sa.Column("refresh_token", sa.Text, nullable=True),
        sa.Column("selected_repo", sa.String(255), nullable=True),
        sa.Column("added_repos", postgresql.JSONB, server_default="[]"),
        *_timestamps(),
    )

    # ── jobs ──
    op.create_table(
        "jobs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("type", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), server_default="pending", nullable=False),
        sa.Column("payload", postgresql.JSONB, server_default="{}"),
        sa.Column("result", postgresql.JSONB, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("retry_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("max_retries", sa.Integer, server_default="3", nullable=False),
        sa.Column("locked_by", sa.String(128), nullable=True),
        sa.Column("locked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer, server_default="1", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_jobs_status_created_at", "jobs", ["status", "created_at"])
    op.create_index("ix_jobs_user_id_created_at", "jobs", ["user_id", "created_at"])

    # ── events ──
    op.create_table(
        "events",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("event_type", sa.String(128), nullable=False),
        sa.Column("level", sa.String(16), server_default="info"),
        sa.Column("source", sa.String(128), nullable=True),
        sa.Column("message", sa.Text, nullable=True),
        sa.Column("user_id", sa.Uuid(), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("job_id", sa.Uuid(), nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_events_event_type_created_at", "events", ["event_type", "created_at"])


def downgrade() -> None:
    op.drop_index("ix_events_event_type_created_at", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_jobs_user_id_created_at", table_name="jobs")
    op.drop_index("ix_jobs_status_created_at", table_name="jobs")
    op.drop_table("jobs")
    op.drop_table("github_connections")
    op.drop_table("user_profiles")
    op.drop_table("users")
