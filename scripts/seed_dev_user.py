# scripts/seed_dev_user.py
"""
Seed a development user with a profile and a GitHub connection.
Run: python scripts/seed_dev_user.py

Reads DEV_OPENAI_API_KEY and DEV_GITHUB_TOKEN from the environment.
"""
from __future__ import annotations

import asyncio
import os

from sqlalchemy import select

from api.app.config import get_settings
from db.session import get_db, get_session_factory
from jobs.factory import build_profile_store
from models.user import User
from services.github_connections import GitHubConnectionStore

DEV_EMAIL = "dev@issue-forge.local"
DEV_TOKEN = "dev-api-token-001"


async def seed():
    async for db in get_db():
        stmt = select(User).where(User.email == DEV_EMAIL)
        result = await db.execute(stmt)
        user = result.scalar_one_or_none()

        if user:
            print(f"Seed user already exists: {user.id}")
        else:
            user = User(name="Dev User", email=DEV_EMAIL, api_token=DEV_TOKEN)
            db.add(user)
            await db.flush()
            print(f"Created user: {user.id} (token: {DEV_TOKEN})")

    openai_key = os.getenv("DEV_OPENAI_API_KEY")
    if openai_key:
        await build_profile_store(get_settings()).set_openai_key(user.id, openai_key)
        print("Stored encrypted OpenAI key")

    github_token = os.getenv("DEV_GITHUB_TOKEN")
    if github_token:
        await GitHubConnectionStore(get_session_factory()).save(user.id, github_token)
        print("Saved GitHub connection")

    print("Seed complete.")


if __name__ == "__main__":
    asyncio.run(seed())
