from __future__ import annotations

import asyncio

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_connection_store, get_current_user, get_github_client, get_session
from api.app.schemas.github import AddedReposResponse, RepoAction, RepositorySummary, SelectedRepo
from models.user import User
from services.github_connections import GitHubConnectionStore
from services.github_publish import INVALID_REPOSITORY, GitHubPublisher, split_repository
from services.observability import log_event

router = APIRouter(prefix="/github", tags=["github"])

NO_CONNECTION = "No GitHub connection found"


def _check_repository(full_name: str) -> None:
    if split_repository(full_name) is None:
        raise HTTPException(status_code=400, detail=INVALID_REPOSITORY)


@router.get("/added-repos", response_model=AddedReposResponse)
async def list_added_repos(
    user: User = Depends(get_current_user),
    connections: GitHubConnectionStore = Depends(get_connection_store),
    github: GitHubPublisher = Depends(get_github_client),
):
    """The user's workspace repositories, with live details from GitHub."""
    connection = await connections.get(user.id)
    if connection is None:
        raise HTTPException(status_code=404, detail=NO_CONNECTION)

    details = await asyncio.gather(
        *(github.get_repository(connection.access_token, name) for name in connection.added_repos or [])
    )
    # repos that were deleted or lost access are skipped
    return AddedReposResponse(
        repositories=[RepositorySummary(**d) for d in details if d is not None],
        selected_repo=connection.selected_repo,
    )


@router.post("/added-repos")
async def manage_added_repos(
    body: RepoAction,
    user: User = Depends(get_current_user),
    connections: GitHubConnectionStore = Depends(get_connection_store),
):
    if not body.action or not body.repo_full_name:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if body.action not in ("add", "remove"):
        raise HTTPException(status_code=400, detail="Invalid action")
    _check_repository(body.repo_full_name)

    if await connections.get(user.id) is None:
        raise HTTPException(status_code=404, detail=NO_CONNECTION)

    if body.action == "add":
        await connections.add_repository(user.id, body.repo_full_name)
    else:
        await connections.remove_repository(user.id, body.repo_full_name)
    return {"success": True}


@router.get("/selected-repo", response_model=SelectedRepo)
async def get_selected_repo(
    user: User = Depends(get_current_user),
    connections: GitHubConnectionStore = Depends(get_connection_store),
):
    connection = await connections.get(user.id)
    return SelectedRepo(selected_repo=connection.selected_repo if connection else None)


@router.put("/selected-repo", response_model=SelectedRepo)
async def set_selected_repo(
    body: SelectedRepo,
    user: User = Depends(get_current_user),
    connections: GitHubConnectionStore = Depends(get_connection_store),
):
    """Select the default publish target; it is added to the workspace too."""
    if not body.selected_repo:
        raise HTTPException(status_code=400, detail="Missing required fields")
    _check_repository(body.selected_repo)

    if not await connections.update_selected_repo(user.id, body.selected_repo):
        raise HTTPException(status_code=404, detail=NO_CONNECTION)
    return SelectedRepo(selected_repo=body.selected_repo)


@router.delete("/connection")
async def disconnect(
    user: User = Depends(get_current_user),
    connections: GitHubConnectionStore = Depends(get_connection_store),
    db: AsyncSession = Depends(get_session),
):
    await connections.delete(user.id)
    await log_event(db, "github_disconnected", source="api", user_id=user.id)
    return {"success": True}
