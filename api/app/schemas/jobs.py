# api/app/schemas/jobs.py
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel

from jobs.payloads import GeneratedContent


class CreateJobRequest(BaseModel):
    title: str | None = None
    prompt: str = ""
    repository: str = ""
    generated_content: GeneratedContent | None = None


class CreateJobResponse(BaseModel):
    success: bool = True
    job_id: uuid.UUID
    status: str


class JobStatusResponse(BaseModel):
    id: uuid.UUID
    type: str
    status: str
    result: dict | None = None
    error: str | None = None
    retry_count: int
    max_retries: int
    created_at: datetime
    updated_at: datetime
    completed_at: datetime | None = None

    class Config:
        from_attributes = True


class ProcessJobsResponse(BaseModel):
    success: bool = True
    processed_count: int
