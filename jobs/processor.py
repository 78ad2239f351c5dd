# jobs/processor.py
"""
Job processor: drives claimed jobs to a terminal state (or back to
pending for a retry).

Meant to be poked by a scheduler (worker loop, cron route); there is
no timer in here. Jobs are handled one at a time.
"""
from __future__ import annotations

import asyncio
import logging
import math
import uuid
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from pydantic import ValidationError

from ai.prompts import ISSUE_WRITER
from jobs.errors import JobStoreError, TransientJobError, UnrecoverableJobError
from jobs.payloads import (
    CreateAndPublishIssuePayload,
    CreateAndPublishIssueResult,
    GeneratedContent,
    JobType,
)
from jobs.queue import JobQueue
from models.job import Job
from services.github_connections import GitHubConnectionStore
from services.github_publish import GitHubPublisher, PublishIssueParams
from services.openai_llm import LLMService
from services.profiles import ProfileStore
from services.title_generation import generate_auto_title

logger = logging.getLogger(__name__)

T = TypeVar("T")
Handler = Callable[[Job], Awaitable[None]]

MISSING_OPENAI_KEY = "OpenAI API key not found"
GITHUB_NOT_CONNECTED = "GitHub not connected"
UNKNOWN_JOB_TYPE = "Unknown job type"
UNKNOWN_ERROR = "Unknown error"

# rough gpt-4o-mini pricing, per estimated token
COST_PER_TOKEN = 0.00001


def estimate_usage(markdown: str, raw_response: str) -> tuple[int, float]:
    tokens = math.ceil((len(markdown) + len(raw_response)) / 4)
    return tokens, tokens * COST_PER_TOKEN


def _error_message(exc: BaseException) -> str:
    return str(exc).strip() or UNKNOWN_ERROR


class JobProcessor:
    def __init__(
        self,
        queue: JobQueue,
        profiles: ProfileStore,
        connections: GitHubConnectionStore,
        llm: LLMService,
        publisher: GitHubPublisher,
        *,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        call_timeout: float | None = 120.0,
        publish_max_retries: int = 3,
        publish_initial_delay: float = 1.0,
        worker_id: str | None = None,
    ) -> None:
        self.queue = queue
        self.profiles = profiles
        self.connections = connections
        self.llm = llm
        self.publisher = publisher
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.call_timeout = call_timeout
        self.publish_max_retries = publish_max_retries
        self.publish_initial_delay = publish_initial_delay
        self.worker_id = worker_id

        self._handlers: dict[JobType, Handler] = {
            JobType.CREATE_AND_PUBLISH_ISSUE: self._handle_create_and_publish_issue,
        }

    # ─────────────────────────────────────────────
    # helpers
    # ─────────────────────────────────────────────

    async def _call(self, awaitable: Awaitable[T], what: str) -> T:
        """Await an external call under the per-call timeout."""
        try:
            return await asyncio.wait_for(awaitable, timeout=self.call_timeout)
        except asyncio.TimeoutError as exc:
            raise TransientJobError(f"{what} timed out after {self.call_timeout:g}s") from exc

    def _handler_for(self, job_type: str) -> Handler | None:
        try:
            return self._handlers.get(JobType(job_type))
        except ValueError:
            return None

    async def _retry_or_fail(self, job_id: uuid.UUID, exc: BaseException) -> None:
        job = await self.queue.get_job(job_id)
        if job is None:
            logger.error("Job %s disappeared while handling: %s", job_id, exc)
            return
        if job.is_terminal:
            logger.warning("Job %s is already %s, leaving it alone", job_id, job.status)
            return

        if job.retry_count < job.max_retries:
            await self.queue.retry_job(job_id)
        else:
            await self.queue.update_job_status(job_id, "failed", error=_error_message(exc))

    # ─────────────────────────────────────────────
    # create-and-publish-issue
    # ─────────────────────────────────────────────

    async def _generate_content(self, user_id: uuid.UUID, api_key: str, prompt: str) -> GeneratedContent:
        raw = await self._call(
            self.llm.extract_json(
                api_key,
                ISSUE_WRITER,
                prompt,
                model=self.model,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            ),
            "OpenAI completion",
        )
        if not raw:
            raise TransientJobError("No content generated from AI")

        try:
            content = GeneratedContent.model_validate_json(raw)
        except ValidationError as exc:
            raise TransientJobError(f"Invalid AI response ({exc.error_count()} validation errors)") from exc

        tokens, cost = estimate_usage(content.markdown, raw)
        await self._call(self.profiles.update_usage_stats(user_id, tokens, cost), "Usage tracking")
        return content

    async def _create_and_publish_issue(
        self,
        user_id: uuid.UUID,
        payload: CreateAndPublishIssuePayload,
    ) -> CreateAndPublishIssueResult:
        # ── Content ─────────────────────────────
        if payload.generated_content is not None:
            content = payload.generated_content
        else:
            api_key = await self._call(self.profiles.get_openai_key(user_id), "Profile lookup")
            if not api_key:
                raise UnrecoverableJobError(MISSING_OPENAI_KEY)
            content = await self._generate_content(user_id, api_key, payload.prompt)

        # ── Title (text fallback only) ──────────
        title = (await generate_auto_title(content.markdown, payload.title)).title

        # ── GitHub ──────────────────────────────
        connection = await self._call(self.connections.get(user_id), "GitHub connection lookup")
        if connection is None:
            raise UnrecoverableJobError(GITHUB_NOT_CONNECTED)

        # not under call_timeout: cancelling after GitHub created the issue
        # would publish it twice on retry. The publisher bounds each request.
        published = await self.publisher.publish_with_retry(
            PublishIssueParams(
                title=title,
                body=content.markdown,
                labels=[content.summary.type],
                access_token=connection.access_token,
                repository=payload.repository,
            ),
            max_retries=self.publish_max_retries,
            initial_delay=self.publish_initial_delay,
        )
        if not published.success:
            raise TransientJobError(published.error or "Failed to publish to GitHub")

        return CreateAndPublishIssueResult(
            issue_url=published.issue_url,
            issue_number=published.issue_number,
            repository=payload.repository,
            title=title,
        )

    async def process_create_and_publish_issue(
        self,
        job_id: uuid.UUID,
        user_id: uuid.UUID,
        payload: CreateAndPublishIssuePayload | dict[str, Any],
    ) -> None:
        """
        Generate content, title it, publish it, record the outcome.

        Every path ends in a status write: completed, failed, or pending
        again via retry_job. Only a storage failure on that write escapes.
        """
        try:
            # visible as "processing" before any external call
            await self.queue.update_job_status(job_id, "processing")

            if not isinstance(payload, CreateAndPublishIssuePayload):
                try:
                    payload = CreateAndPublishIssuePayload.model_validate(payload)
                except ValidationError as exc:
                    raise UnrecoverableJobError(
                        f"Invalid job payload: {exc.error_count()} validation error(s)"
                    ) from exc

            result = await self._create_and_publish_issue(user_id, payload)

        except UnrecoverableJobError as exc:
            logger.error("Job %s cannot succeed: %s", job_id, exc)
            await self.queue.update_job_status(job_id, "failed", error=_error_message(exc))
            return
        except Exception as exc:
            logger.exception("Error processing job %s", job_id)
            await self._retry_or_fail(job_id, exc)
            return

        try:
            await self.queue.update_job_status(job_id, "completed", result=result)
        except JobStoreError:
            # the issue exists on GitHub; retrying would publish it again
            logger.error("Job %s published %s but its result could not be stored", job_id, result.issue_url)
            raise
        logger.info("Job %s published %s", job_id, result.issue_url)

    async def _handle_create_and_publish_issue(self, job: Job) -> None:
        await self.process_create_and_publish_issue(job.id, job.user_id, job.payload)

    # ─────────────────────────────────────────────
    # scheduling entry points
    # ─────────────────────────────────────────────

    async def process_next_job(self) -> bool:
        """Claim and run one pending job. False when the queue is empty."""
        job = await self.queue.get_next_pending_job(worker_id=self.worker_id)
        if job is None:
            return False

        logger.info("Processing job %s of type %s", job.id, job.type)

        handler = self._handler_for(job.type)
        if handler is None:
            logger.error("Unknown job type: %s", job.type)
            await self.queue.update_job_status(job.id, "failed", error=UNKNOWN_JOB_TYPE)
        else:
            await handler(job)

        return True

    async def process_pending_jobs(self, max_jobs: int = 10) -> int:
        processed = 0
        for _ in range(max_jobs):
            if not await self.process_next_job():
                break
            processed += 1
        return processed
