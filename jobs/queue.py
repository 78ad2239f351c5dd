# jobs/queue.py
from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import timedelta

from pydantic import BaseModel
from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from jobs.errors import InvalidJobTransition, JobNotFoundError, JobStoreError
from jobs.payloads import JobType
from models.base import utcnow
from models.job import JOB_STATUSES, TERMINAL_STATUSES, Job

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 3
DEFAULT_RETENTION = timedelta(hours=24)
CLAIM_CANDIDATES = 5
MAX_RETRIES_EXCEEDED = "Max retries exceeded"


def _as_uuid(value: uuid.UUID | str) -> uuid.UUID | None:
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


def _apply_status(job: Job, status: str, result: dict | None = None, error: str | None = None) -> None:
    now = utcnow()
    job.status = status
    job.result = result if status == "completed" else None
    job.error = error if status == "failed" else None
    job.updated_at = now
    if status in TERMINAL_STATUSES:
        job.completed_at = now
        job.locked_by = None
        job.locked_at = None


class JobQueue:
    """
    Durable job queue on top of the `jobs` table.

    Every call opens its own short transaction, so callers never hold
    a DB transaction open across a network call.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_max_retries: int = DEFAULT_MAX_RETRIES,
        retention: timedelta = DEFAULT_RETENTION,
    ) -> None:
        if default_max_retries < 0:
            raise ValueError(f"default_max_retries must be >= 0, got {default_max_retries}")
        self._session_factory = session_factory
        self.default_max_retries = default_max_retries
        self.retention = retention

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._session_factory() as db:
                yield db
        except SQLAlchemyError as exc:
            logger.error("Job store failure: %s", exc)
            raise JobStoreError(str(exc)) from exc

    async def enqueue(
        self,
        user_id: uuid.UUID,
        job_type: JobType | str,
        payload: BaseModel | dict,
        max_retries: int | None = None,
    ) -> Job:
        if isinstance(job_type, JobType):
            job_type = job_type.value
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json")
        if max_retries is None:
            max_retries = self.default_max_retries
        if max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {max_retries}")

        job = Job(
            user_id=user_id,
            type=job_type,
            status="pending",
            payload=payload,
            retry_count=0,
            max_retries=max_retries,
        )
        async with self._session() as db:
            db.add(job)
            await db.commit()

        logger.info("Enqueued job %s [%s] user=%s", job.id, job.type, job.user_id)
        return job

    async def get_job(self, job_id: uuid.UUID | str) -> Job | None:
        key = _as_uuid(job_id)
        if key is None:
            return None
        async with self._session() as db:
            return await db.get(Job, key)

    async def get_user_jobs(self, user_id: uuid.UUID, limit: int = 10) -> list[Job]:
        stmt = (
            select(Job)
            .where(Job.user_id == user_id)
            .order_by(Job.created_at.desc())
            .limit(limit)
        )
        async with self._session() as db:
            return list((await db.execute(stmt)).scalars().all())

    async def _claim(self, db: AsyncSession, job_id: uuid.UUID, worker_id: str | None) -> bool:
        now = utcnow()
        stmt = (
            update(Job)
            .where(Job.id == job_id, Job.status == "pending")
            .values(
                status="processing",
                locked_by=worker_id,
                locked_at=now,
                updated_at=now,
                version=Job.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        res = await db.execute(stmt)
        await db.commit()
        return res.rowcount == 1

    async def claim_job(self, job_id: uuid.UUID | str, worker_id: str | None = None) -> bool:
        """
        Atomically move a job from pending to processing.
        False means the job was not pending anymore (another worker got it).
        """
        key = _as_uuid(job_id)
        if key is None:
            return False
        async with self._session() as db:
            return await self._claim(db, key, worker_id)

    async def get_next_pending_job(self, worker_id: str | None = None) -> Job | None:
        """
        Claims the oldest pending job and returns it (status=processing).
        Returns None when nothing is pending.
        """
        stmt = (
            select(Job.id)
            .where(Job.status == "pending")
            .order_by(Job.created_at.asc(), Job.id.asc())
            .limit(CLAIM_CANDIDATES)
            # PostgreSQL only; SQLite renders no row locks
            .with_for_update(skip_locked=True)
        )

        async with self._session() as db:
            while True:
                candidates = list((await db.execute(stmt)).scalars().all())
                if not candidates:
                    await db.rollback()
                    return None

                for job_id in candidates:
                    if await self._claim(db, job_id, worker_id):
                        job = await db.get(Job, job_id, populate_existing=True)
                        logger.info(
                            "Worker %s claimed job %s [%s]",
                            worker_id or "-",
                            job_id,
                            job.type if job else "?",
                        )
                        return job
                    logger.debug("Job %s already claimed elsewhere", job_id)

    async def update_job_status(
        self,
        job_id: uuid.UUID | str,
        status: str,
        result: BaseModel | dict | None = None,
        error: str | None = None,
    ) -> Job:
        if status not in JOB_STATUSES:
            raise InvalidJobTransition(f"Unknown job status: {status}")
        if status == "completed" and result is None:
            raise InvalidJobTransition("A completed job requires a result")
        if status == "failed" and not error:
            raise InvalidJobTransition("A failed job requires an error message")
        if isinstance(result, BaseModel):
            result = result.model_dump(mode="json")

        async with self._session() as db:
            key = _as_uuid(job_id)
            job = await db.get(Job, key) if key is not None else None
            if job is None:
                raise JobNotFoundError(f"Job not found: {job_id}")
            if job.is_terminal:
                raise InvalidJobTransition(f"Job {job_id} is already {job.status}")

            _apply_status(job, status, result, error)
            await db.commit()

        if status == "failed":
            logger.error("Job %s failed: %s", job_id, error)
        else:
            logger.info("Job %s -> %s", job_id, status)
        return job

    async def retry_job(self, job_id: uuid.UUID | str) -> bool:
        """
        Puts a job back to pending and bumps retry_count.
        When the retry budget is spent the job is failed instead and
        False is returned.
        """
        async with self._session() as db:
            key = _as_uuid(job_id)
            job = await db.get(Job, key) if key is not None else None
            if job is None:
                raise JobNotFoundError(f"Job not found: {job_id}")
            if job.is_terminal:
                raise InvalidJobTransition(f"Job {job_id} is already {job.status}")

            if job.retry_count >= job.max_retries:
                _apply_status(job, "failed", error=MAX_RETRIES_EXCEEDED)
                await db.commit()
                logger.error(
                    "Job %s permanently failed after %d retries",
                    job_id,
                    job.retry_count,
                )
                return False

            job.retry_count += 1
            job.locked_by = None
            job.locked_at = None
            _apply_status(job, "pending")
            await db.commit()

        logger.warning("Job %s retry %d/%d", job_id, job.retry_count, job.max_retries)
        return True

    async def cleanup_old_jobs(self, older_than: timedelta | None = None) -> int:
        """Delete finished jobs past the retention window."""
        cutoff = utcnow() - (self.retention if older_than is None else older_than)
        stmt = (
            delete(Job)
            .where(Job.status.in_(sorted(TERMINAL_STATUSES)), Job.updated_at < cutoff)
            .execution_options(synchronize_session=False)
        )
        async with self._session() as db:
            res = await db.execute(stmt)
            await db.commit()

        if res.rowcount:
            logger.info("Removed %d finished jobs older than %s", res.rowcount, cutoff.isoformat())
        return res.rowcount
