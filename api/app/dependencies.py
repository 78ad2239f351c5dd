# api/app/dependencies.py
from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from db.session import get_db, get_session_factory
from jobs.factory import (
    build_github_publisher,
    build_job_processor,
    build_job_queue,
    build_profile_store,
)
from jobs.processor import JobProcessor
from jobs.queue import JobQueue
from models.user import User
from services.github_connections import GitHubConnectionStore
from services.github_publish import GitHubPublisher
from services.openai_llm import LLMService
from services.profiles import ProfileStore


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    async for session in get_db():
        yield session


async def get_current_user(
    x_api_token: str = Header(..., alias="X-Api-Token"),
    db: AsyncSession = Depends(get_session),
) -> User:
    """Resolve the caller from the API token header."""
    stmt = select(User).where(User.api_token == x_api_token)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API token",
        )
    return user


def verify_cron_secret(authorization: str | None = Header(None)) -> None:
    """Only enforced when CRON_SECRET is configured."""
    cron_secret = get_settings().cron_secret
    if cron_secret and authorization != f"Bearer {cron_secret}":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")


def get_job_queue() -> JobQueue:
    return build_job_queue()


def get_job_processor() -> JobProcessor:
    return build_job_processor(worker_id="api")


def get_profile_store() -> ProfileStore:
    return build_profile_store()


def get_llm_service() -> LLMService:
    settings = get_settings()
    return LLMService(model=settings.openai_title_model, timeout=settings.external_call_timeout)


def get_connection_store() -> GitHubConnectionStore:
    return GitHubConnectionStore(get_session_factory())


def get_github_client() -> GitHubPublisher:
    return build_github_publisher()
