# tests/test_job_queue.py
"""
Tests for the job queue against a throwaway SQLite database.
"""
from __future__ import annotations

import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from api.app.config import Settings
from db.engine import build_engine
from db.session import build_session_factory
from jobs.errors import InvalidJobTransition, JobNotFoundError, JobStoreError
from jobs.payloads import JobType
from jobs.queue import MAX_RETRIES_EXCEEDED, JobQueue

PAYLOAD = {"title": "", "prompt": "add dark mode", "repository": "o/r"}
RESULT = {"issue_url": "https://github.com/o/r/issues/1", "issue_number": 1, "repository": "o/r", "title": "Add dark mode"}


@pytest.mark.asyncio
async def test_enqueue_defaults(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)

    assert job.status == "pending"
    assert job.type == "create-and-publish-issue"
    assert job.retry_count == 0
    assert job.max_retries == 3
    assert job.result is None
    assert job.error is None
    assert job.created_at is not None


@pytest.mark.asyncio
async def test_get_job_missing_returns_none(queue):
    assert await queue.get_job(uuid.uuid4()) is None
    assert await queue.get_job("not-a-uuid") is None


@pytest.mark.asyncio
async def test_get_job_is_idempotent(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)

    first = await queue.get_job(job.id)
    second = await queue.get_job(str(job.id))
    assert first.to_dict() == second.to_dict()


@pytest.mark.asyncio
async def test_next_pending_job_claims_oldest_first(queue, user_id):
    first = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    second = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)

    claimed = await queue.get_next_pending_job(worker_id="w1")
    assert claimed.id == first.id
    assert claimed.status == "processing"
    assert claimed.locked_by == "w1"

    # the claimed job is not handed out twice
    claimed_again = await queue.get_next_pending_job(worker_id="w2")
    assert claimed_again.id == second.id

    assert await queue.get_next_pending_job() is None


@pytest.mark.asyncio
async def test_claim_is_exclusive(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)

    assert await queue.claim_job(job.id, "w1") is True
    assert await queue.claim_job(job.id, "w2") is False
    assert (await queue.get_job(job.id)).locked_by == "w1"


@pytest.mark.asyncio
async def test_completed_requires_result(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)

    with pytest.raises(InvalidJobTransition):
        await queue.update_job_status(job.id, "completed")
    with pytest.raises(InvalidJobTransition):
        await queue.update_job_status(job.id, "failed", error="")
    with pytest.raises(InvalidJobTransition):
        await queue.update_job_status(job.id, "cancelled")

    assert (await queue.get_job(job.id)).status == "pending"


@pytest.mark.asyncio
async def test_update_missing_job_raises(queue):
    with pytest.raises(JobNotFoundError):
        await queue.update_job_status(uuid.uuid4(), "processing")


@pytest.mark.asyncio
async def test_completed_sets_result_only(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    await queue.update_job_status(job.id, "processing")
    await queue.update_job_status(job.id, "completed", result=RESULT, error="ignored")

    stored = await queue.get_job(job.id)
    assert stored.status == "completed"
    assert stored.result == RESULT
    assert stored.error is None
    assert stored.completed_at is not None
    assert stored.updated_at >= stored.created_at


@pytest.mark.asyncio
async def test_failed_sets_error_only(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    await queue.update_job_status(job.id, "failed", result=RESULT, error="boom")

    stored = await queue.get_job(job.id)
    assert stored.status == "failed"
    assert stored.error == "boom"
    assert stored.result is None


@pytest.mark.asyncio
async def test_terminal_jobs_are_frozen(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    await queue.update_job_status(job.id, "failed", error="boom")

    with pytest.raises(InvalidJobTransition):
        await queue.update_job_status(job.id, "processing")
    with pytest.raises(InvalidJobTransition):
        await queue.retry_job(job.id)
    assert await queue.claim_job(job.id) is False


@pytest.mark.asyncio
async def test_retry_job_requeues(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    claimed = await queue.get_next_pending_job(worker_id="w1")

    assert await queue.retry_job(claimed.id) is True

    stored = await queue.get_job(job.id)
    assert stored.status == "pending"
    assert stored.retry_count == 1
    assert stored.locked_by is None
    assert stored.error is None

    # eligible for pickup again
    assert (await queue.get_next_pending_job()).id == job.id


@pytest.mark.asyncio
async def test_retry_job_never_exceeds_max_retries(queue, user_id):
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD, max_retries=2)

    assert await queue.retry_job(job.id) is True
    assert await queue.retry_job(job.id) is True
    assert await queue.retry_job(job.id) is False

    stored = await queue.get_job(job.id)
    assert stored.retry_count == 2
    assert stored.status == "failed"
    assert stored.error == MAX_RETRIES_EXCEEDED


@pytest.mark.asyncio
async def test_get_user_jobs_newest_first(queue, user_id):
    ids = [(await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)).id for _ in range(3)]

    jobs = await queue.get_user_jobs(user_id, limit=2)
    assert [j.id for j in jobs] == ids[::-1][:2]
    assert await queue.get_user_jobs(uuid.uuid4()) == []


@pytest.mark.asyncio
async def test_cleanup_removes_only_finished_jobs(queue, user_id):
    done = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    waiting = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)
    await queue.update_job_status(done.id, "completed", result=RESULT)

    # nothing is older than the default retention yet
    assert await queue.cleanup_old_jobs() == 0

    removed = await queue.cleanup_old_jobs(older_than=timedelta(seconds=-1))
    assert removed == 1
    assert await queue.get_job(done.id) is None
    assert await queue.get_job(waiting.id) is not None


@pytest.mark.asyncio
async def test_storage_errors_are_wrapped(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'nope.db'}")
    broken = JobQueue(build_session_factory(engine))

    with pytest.raises(JobStoreError):
        await broken.enqueue(uuid.uuid4(), JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD)

    await engine.dispose()


@pytest.mark.asyncio
async def test_enqueue_rejects_negative_max_retries(queue, user_id):
    with pytest.raises(ValueError):
        await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD, max_retries=-1)

    assert await queue.get_user_jobs(user_id) == []

    # zero is allowed: one attempt, no retries
    job = await queue.enqueue(user_id, JobType.CREATE_AND_PUBLISH_ISSUE, PAYLOAD, max_retries=0)
    assert job.max_retries == 0


def test_queue_rejects_negative_default_max_retries():
    with pytest.raises(ValueError):
        JobQueue(MagicMock(), default_max_retries=-1)


def test_settings_reject_negative_job_max_retries():
    with pytest.raises(ValidationError):
        Settings(job_max_retries=-1)
