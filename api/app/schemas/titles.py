from __future__ import annotations

from pydantic import BaseModel, Field


class TitleRequest(BaseModel):
    prompt: str = Field(..., min_length=10, max_length=20000)


class TitleResponse(BaseModel):
    title: str
    alternatives: list[str] = []
    is_generated: bool
