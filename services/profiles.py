# services/profiles.py
"""
User profile store: the encrypted OpenAI key and running usage stats.
"""
from __future__ import annotations

import logging
import uuid

from cryptography.fernet import InvalidToken
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.base import utcnow
from models.user_profile import UserProfile
from services.crypto import decrypt_secret, encrypt_secret

logger = logging.getLogger(__name__)


class ProfileStore:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        encryption_key: str | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._encryption_key = encryption_key

    async def _get(self, db: AsyncSession, user_id: uuid.UUID) -> UserProfile | None:
        stmt = select(UserProfile).where(UserProfile.user_id == user_id)
        return (await db.execute(stmt)).scalar_one_or_none()

    async def get(self, user_id: uuid.UUID) -> UserProfile | None:
        async with self._session_factory() as db:
            return await self._get(db, user_id)

    async def set_openai_key(self, user_id: uuid.UUID, api_key: str) -> None:
        async with self._session_factory() as db:
            profile = await self._get(db, user_id)
            if profile is None:
                profile = UserProfile(user_id=user_id, total_tokens=0, total_cost=0.0)
                db.add(profile)

            profile.openai_api_key = encrypt_secret(api_key, self._encryption_key)
            profile.openai_key_added_at = utcnow()
            await db.commit()

        logger.info("Stored OpenAI key for user %s", user_id)

    async def remove_openai_key(self, user_id: uuid.UUID) -> None:
        async with self._session_factory() as db:
            profile = await self._get(db, user_id)
            if profile is None:
                return
            profile.openai_api_key = None
            profile.openai_key_added_at = None
            await db.commit()

        logger.info("Removed OpenAI key for user %s", user_id)

    async def get_openai_key(self, user_id: uuid.UUID) -> str | None:
        """
        Decrypted key, or None when absent or encrypted under another key.
        A missing ENCRYPTION_KEY raises ValueError.
        """
        profile = await self.get(user_id)
        if profile is None or not profile.openai_api_key:
            return None
        try:
            return decrypt_secret(profile.openai_api_key, self._encryption_key)
        except InvalidToken as exc:
            logger.error("Failed to decrypt OpenAI key for user %s: %s", user_id, exc)
            return None

    async def update_usage_stats(self, user_id: uuid.UUID, tokens: int, cost: float) -> None:
        # single UPDATE so concurrent jobs don't lose increments
        stmt = (
            update(UserProfile)
            .where(UserProfile.user_id == user_id)
            .values(
                total_tokens=UserProfile.total_tokens + tokens,
                total_cost=UserProfile.total_cost + cost,
                last_used_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        async with self._session_factory() as db:
            res = await db.execute(stmt)
            await db.commit()

        if res.rowcount == 0:
            logger.warning("No profile for user %s, usage not recorded", user_id)

    async def get_usage_stats(self, user_id: uuid.UUID) -> dict:
        profile = await self.get(user_id)
        if profile is None:
            return {"total_tokens": 0, "total_cost": 0.0, "last_used": None}
        return {
            "total_tokens": profile.total_tokens,
            "total_cost": profile.total_cost,
            "last_used": profile.last_used_at,
        }
