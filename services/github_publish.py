# services/github_publish.py
"""
Publish issues to GitHub over the REST API.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 15.0

INVALID_REPOSITORY = 'Invalid repository format. Expected "owner/repo"'


@dataclass
class PublishIssueParams:
    title: str
    body: str
    access_token: str
    repository: str
    labels: list[str] = field(default_factory=list)
    assignees: list[str] = field(default_factory=list)


@dataclass
class PublishIssueResult:
    success: bool
    issue_url: str | None = None
    issue_number: int | None = None
    error: str | None = None


def _describe_status_error(response: httpx.Response) -> str:
    if response.status_code == 404:
        return "Repository not found or access denied"
    if response.status_code == 403:
        return "GitHub API rate limit exceeded or insufficient permissions"
    if response.status_code == 401:
        return "GitHub authentication failed. Please reconnect your account"
    try:
        payload = response.json()
    except ValueError:
        payload = None
    message = payload.get("message") if isinstance(payload, dict) else None
    return message or f"Failed to publish issue (HTTP {response.status_code})"


def _headers(access_token: str) -> dict[str, str]:
    return {
        "Authorization": f"Bearer {access_token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }


def split_repository(full_name: str) -> tuple[str, str] | None:
    owner, _, repo = full_name.partition("/")
    if not owner or not repo or "/" in repo:
        return None
    return owner, repo


def _is_permanent(error: str | None) -> bool:
    if not error:
        return False
    return "authentication" in error or "access denied" in error or error == INVALID_REPOSITORY


class GitHubPublisher:
    def __init__(
        self,
        base_url: str = GITHUB_API_URL,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    async def publish(self, params: PublishIssueParams) -> PublishIssueResult:
        """Create one issue. Failures come back as `success=False`, never raised."""
        parts = split_repository(params.repository)
        if parts is None:
            return PublishIssueResult(success=False, error=INVALID_REPOSITORY)
        owner, repo = parts

        body: dict = {"title": params.title, "body": params.body, "labels": params.labels}
        if params.assignees:
            body["assignees"] = params.assignees

        headers = _headers(params.access_token)

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.post(f"/repos/{owner}/{repo}/issues", json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
            return PublishIssueResult(
                success=True,
                issue_url=data["html_url"],
                issue_number=data["number"],
            )
        except httpx.HTTPStatusError as exc:
            logger.error(
                "GitHub publish to %s failed with status %d: %s",
                params.repository,
                exc.response.status_code,
                exc.response.text,
            )
            return PublishIssueResult(success=False, error=_describe_status_error(exc.response))
        except httpx.HTTPError as exc:
            logger.error("GitHub publish to %s failed: %s", params.repository, exc)
            return PublishIssueResult(success=False, error=str(exc) or "Failed to publish issue")
        except (KeyError, ValueError) as exc:
            logger.error("GitHub returned an unexpected issue payload: %s", exc)
            return PublishIssueResult(success=False, error="Failed to publish issue")

    async def publish_with_retry(
        self,
        params: PublishIssueParams,
        max_retries: int = 3,
        initial_delay: float = 1.0,
    ) -> PublishIssueResult:
        """
        `publish` with exponential backoff. Auth and access errors are
        returned straight away since another attempt cannot fix them.
        """
        last_error: str | None = None

        for attempt in range(max_retries):
            result = await self.publish(params)
            if result.success:
                return result

            last_error = result.error
            if _is_permanent(result.error):
                return result

            if attempt < max_retries - 1:
                delay = initial_delay * 2 ** attempt
                logger.warning(
                    "GitHub publish attempt %d/%d failed (%s), retrying in %.1fs",
                    attempt + 1,
                    max_retries,
                    result.error,
                    delay,
                )
                await asyncio.sleep(delay)

        return PublishIssueResult(success=False, error=last_error or "Failed after multiple attempts")

    async def get_repository(self, access_token: str, full_name: str) -> dict | None:
        """Repository summary for the repo picker. None when it cannot be read."""
        parts = split_repository(full_name)
        if parts is None:
            return None
        owner, repo = parts

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            ) as client:
                response = await client.get(f"/repos/{owner}/{repo}", headers=_headers(access_token))
                response.raise_for_status()
                data = response.json()
            return {
                "id": data["id"],
                "name": data["name"],
                "full_name": data["full_name"],
                "private": data.get("private", False),
                "description": data.get("description"),
                "updated_at": data.get("updated_at"),
                "html_url": data.get("html_url"),
            }
        except (httpx.HTTPError, KeyError, ValueError) as exc:
            # deleted repo or revoked access: the caller skips it
            logger.warning("Could not fetch repository %s: %s", full_name, exc)
            return None
