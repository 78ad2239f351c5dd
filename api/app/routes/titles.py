from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from api.app.config import get_settings
from api.app.dependencies import get_current_user, get_llm_service, get_profile_store
from api.app.schemas.titles import TitleRequest, TitleResponse
from jobs.processor import estimate_usage
from models.user import User
from services.openai_llm import LLMService
from services.profiles import ProfileStore
from services.title_generation import generate_auto_title

logger = logging.getLogger(__name__)

router = APIRouter(tags=["titles"])


@router.post("/titles", response_model=TitleResponse)
async def generate_title(
    body: TitleRequest,
    user: User = Depends(get_current_user),
    profiles: ProfileStore = Depends(get_profile_store),
    llm: LLMService = Depends(get_llm_service),
):
    """Suggest an issue title (plus alternatives) for a free-form description."""
    api_key = await profiles.get_openai_key(user.id)
    if not api_key:
        raise HTTPException(
            status_code=403,
            detail="OpenAI API key required. Configure it in Settings to use AI title generation.",
        )

    result = await generate_auto_title(
        body.prompt,
        api_key=api_key,
        llm=llm,
        model=get_settings().openai_title_model,
    )

    if result.is_generated:
        tokens, cost = estimate_usage(" ".join([result.title, *result.alternatives]), body.prompt)
        await profiles.update_usage_stats(user.id, tokens, cost)
        logger.info("Generated title for user %s (%d est. tokens)", user.id, tokens)

    return TitleResponse(
        title=result.title,
        alternatives=result.alternatives,
        is_generated=result.is_generated,
    )
