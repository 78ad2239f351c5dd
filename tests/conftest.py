# tests/conftest.py
from __future__ import annotations

import json
import uuid
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from cryptography.fernet import Fernet

from db.engine import build_engine
from db.session import build_session_factory
from jobs.processor import JobProcessor
from jobs.queue import JobQueue
from models import Base, User
from services.github_connections import GitHubConnectionStore
from services.github_publish import PublishIssueResult
from services.profiles import ProfileStore

ISSUE_MARKDOWN = "# Add dark mode\n\n## Overview\nUsers want a dark theme."


@pytest_asyncio.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield build_session_factory(engine)

    await engine.dispose()


@pytest_asyncio.fixture
async def user_id(session_factory) -> uuid.UUID:
    async with session_factory() as db:
        user = User(name="Test User", email="test@example.com", api_token="test-token")
        db.add(user)
        await db.commit()
        return user.id


@pytest.fixture
def encryption_key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def queue(session_factory) -> JobQueue:
    return JobQueue(session_factory)


@pytest.fixture
def profiles(session_factory, encryption_key) -> ProfileStore:
    return ProfileStore(session_factory, encryption_key)


@pytest.fixture
def connections(session_factory) -> GitHubConnectionStore:
    return GitHubConnectionStore(session_factory)


@pytest.fixture
def llm() -> MagicMock:
    client = MagicMock()
    client.extract_json = AsyncMock(return_value=json.dumps({
        "markdown": ISSUE_MARKDOWN,
        "summary": {"type": "feature", "priority": "high", "complexity": "medium"},
    }))
    return client


@pytest.fixture
def publisher() -> MagicMock:
    client = MagicMock()
    client.publish_with_retry = AsyncMock(return_value=PublishIssueResult(
        success=True,
        issue_url="https://github.com/o/r/issues/7",
        issue_number=7,
    ))
    return client


@pytest.fixture
def processor(queue, profiles, connections, llm, publisher) -> JobProcessor:
    return JobProcessor(
        queue,
        profiles,
        connections,
        llm,
        publisher,
        model="gpt-4o-mini",
        call_timeout=5.0,
        publish_initial_delay=0,
        worker_id="test-worker",
    )


@pytest_asyncio.fixture
async def ready_user(user_id, profiles, connections) -> uuid.UUID:
    """A user with an OpenAI key and a GitHub connection."""
    await profiles.set_openai_key(user_id, "sk-test-key")
    await connections.save(user_id, "gh-token", selected_repo="o/r")
    return user_id
