from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from api.app.dependencies import get_current_user, get_profile_store, get_session
from api.app.schemas.users import OpenAIKeyStatus, OpenAIKeyUpdate, UsageStats
from models.user import User
from services.observability import log_event
from services.profiles import ProfileStore

router = APIRouter(prefix="/users/me", tags=["users"])


@router.put("/openai-key")
async def set_openai_key(
    body: OpenAIKeyUpdate,
    user: User = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
    db: AsyncSession = Depends(get_session),
):
    """Store the caller's OpenAI key, encrypted."""
    if not body.api_key.startswith("sk-"):
        raise HTTPException(status_code=400, detail="Invalid OpenAI API key format")

    await profiles.set_openai_key(user.id, body.api_key)
    await log_event(db, "openai_key_added", source="api", user_id=user.id)
    return {"success": True}


@router.delete("/openai-key")
async def remove_openai_key(
    user: User = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
    db: AsyncSession = Depends(get_session),
):
    await profiles.remove_openai_key(user.id)
    await log_event(db, "openai_key_removed", source="api", user_id=user.id)
    return {"success": True}


@router.get("/openai-key/status", response_model=OpenAIKeyStatus)
async def openai_key_status(
    user: User = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
):
    profile = await profiles.get(user.id)
    if profile is None or not profile.openai_api_key:
        return OpenAIKeyStatus(has_key=False)
    return OpenAIKeyStatus(has_key=True, added_at=profile.openai_key_added_at)


@router.get("/usage-stats", response_model=UsageStats)
async def usage_stats(
    user: User = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
):
    return UsageStats(**await profiles.get_usage_stats(user.id))
