# api/app/schemas/users.py
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class OpenAIKeyUpdate(BaseModel):
    api_key: str = Field(min_length=1)


class OpenAIKeyStatus(BaseModel):
    has_key: bool
    added_at: datetime | None = None


class UsageStats(BaseModel):
    total_tokens: int
    total_cost: float
    last_used: datetime | None = None
