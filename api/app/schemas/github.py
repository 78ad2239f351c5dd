from __future__ import annotations

from pydantic import BaseModel


class RepositorySummary(BaseModel):
    id: int
    name: str
    full_name: str
    private: bool = False
    description: str | None = None
    updated_at: str | None = None
    html_url: str | None = None


class AddedReposResponse(BaseModel):
    repositories: list[RepositorySummary]
    selected_repo: str | None = None


class RepoAction(BaseModel):
    action: str = ""
    repo_full_name: str = ""


class SelectedRepo(BaseModel):
    selected_repo: str | None = None
