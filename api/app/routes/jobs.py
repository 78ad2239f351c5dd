# api/app/routes/jobs.py
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.config import get_settings
from api.app.dependencies import (
    get_current_user,
    get_job_processor,
    get_job_queue,
    get_session,
    verify_cron_secret,
)
from api.app.schemas.jobs import (
    CreateJobRequest,
    CreateJobResponse,
    JobStatusResponse,
    ProcessJobsResponse,
)
from jobs.payloads import CreateAndPublishIssuePayload, JobType
from jobs.processor import JobProcessor
from jobs.queue import JobQueue
from models.user import User
from services.observability import log_event

router = APIRouter(tags=["jobs"])


@router.post("/jobs", response_model=CreateJobResponse)
async def create_job(
    body: CreateJobRequest,
    user: User = Depends(get_current_user),
    queue: JobQueue = Depends(get_job_queue),
    db: AsyncSession = Depends(get_session),
):
    """Queue an issue for background generation and publishing."""
    if not body.prompt.strip() or not body.repository.strip():
        raise HTTPException(status_code=400, detail="Prompt and repository are required")

    payload = CreateAndPublishIssuePayload(
        title=body.title or "",
        prompt=body.prompt,
        repository=body.repository,
        generated_content=body.generated_content,
    )
    job = await queue.enqueue(user.id, JobType.CREATE_AND_PUBLISH_ISSUE, payload)

    await log_event(
        db,
        "job_enqueued",
        source="api",
        user_id=user.id,
        job_id=job.id,
        metadata={"job_type": job.type, "repository": body.repository},
    )

    return CreateJobResponse(job_id=job.id, status=job.status)


@router.get("/jobs", response_model=list[JobStatusResponse])
async def list_jobs(
    limit: int = 10,
    user: User = Depends(get_current_user),
    queue: JobQueue = Depends(get_job_queue),
):
    jobs = await queue.get_user_jobs(user.id, limit=min(max(limit, 1), 50))
    return [JobStatusResponse.model_validate(j) for j in jobs]


async def _process(processor: JobProcessor, db: AsyncSession) -> ProcessJobsResponse:
    processed = await processor.process_pending_jobs(get_settings().process_batch_size)
    if processed:
        await log_event(db, "jobs_processed", "info", source="api", metadata={"count": processed})
    return ProcessJobsResponse(processed_count=processed)


@router.post("/jobs/process", response_model=ProcessJobsResponse, dependencies=[Depends(verify_cron_secret)])
async def process_jobs(
    processor: JobProcessor = Depends(get_job_processor),
    db: AsyncSession = Depends(get_session),
):
    """Cron hook: drain a small batch of pending jobs."""
    return await _process(processor, db)


@router.get("/jobs/process", response_model=ProcessJobsResponse, dependencies=[Depends(verify_cron_secret)])
async def process_jobs_get(
    processor: JobProcessor = Depends(get_job_processor),
    db: AsyncSession = Depends(get_session),
):
    return await _process(processor, db)


@router.get("/jobs/{job_id}", response_model=JobStatusResponse)
async def get_job(
    job_id: uuid.UUID,
    user: User = Depends(get_current_user),
    queue: JobQueue = Depends(get_job_queue),
):
    """Poll a job's status."""
    job = await queue.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found")
    if job.user_id != user.id:
        raise HTTPException(status_code=403, detail="Unauthorized")

    return JobStatusResponse.model_validate(job)
