# jobs/payloads.py
"""
Job types and their payload shapes.
"""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class JobType(str, Enum):
    CREATE_AND_PUBLISH_ISSUE = "create-and-publish-issue"


class IssueSummary(BaseModel):
    type: str = Field(min_length=1)
    priority: str = "medium"
    complexity: str = "medium"


class GeneratedContent(BaseModel):
    markdown: str = Field(min_length=1)
    summary: IssueSummary


class CreateAndPublishIssuePayload(BaseModel):
    title: str | None = ""
    prompt: str = Field(min_length=1)
    repository: str = Field(min_length=1)
    generated_content: GeneratedContent | None = None


class CreateAndPublishIssueResult(BaseModel):
    issue_url: str
    issue_number: int
    repository: str
    title: str
