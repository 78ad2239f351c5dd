# jobs/factory.py
from __future__ import annotations

from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.app.config import Settings, get_settings
from db.session import get_session_factory
from jobs.processor import JobProcessor
from jobs.queue import JobQueue
from services.github_connections import GitHubConnectionStore
from services.github_publish import GitHubPublisher
from services.openai_llm import LLMService
from services.profiles import ProfileStore


def build_job_queue(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> JobQueue:
    settings = settings or get_settings()
    return JobQueue(
        session_factory or get_session_factory(),
        default_max_retries=settings.job_max_retries,
        retention=timedelta(hours=settings.job_retention_hours),
    )


def build_profile_store(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
) -> ProfileStore:
    settings = settings or get_settings()
    return ProfileStore(session_factory or get_session_factory(), settings.encryption_key)


def build_github_publisher(settings: Settings | None = None) -> GitHubPublisher:
    settings = settings or get_settings()
    return GitHubPublisher(base_url=settings.github_api_url, timeout=settings.github_timeout)


def build_job_processor(
    settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    worker_id: str | None = None,
) -> JobProcessor:
    """Wire a processor and its collaborators from settings."""
    settings = settings or get_settings()
    session_factory = session_factory or get_session_factory()

    return JobProcessor(
        queue=build_job_queue(settings, session_factory),
        profiles=build_profile_store(settings, session_factory),
        connections=GitHubConnectionStore(session_factory),
        llm=LLMService(model=settings.openai_model, timeout=settings.external_call_timeout),
        publisher=build_github_publisher(settings),
        model=settings.openai_model,
        temperature=settings.openai_temperature,
        max_tokens=settings.openai_max_tokens,
        call_timeout=settings.external_call_timeout,
        publish_max_retries=settings.github_publish_max_retries,
        publish_initial_delay=settings.github_publish_initial_delay,
        worker_id=worker_id,
    )
