# services/github_connections.py
"""
Per-user GitHub connection (OAuth tokens + repository selection).
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.github_connection import GitHubConnection

logger = logging.getLogger(__name__)


class GitHubConnectionStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _get(self, db: AsyncSession, user_id: uuid.UUID) -> GitHubConnection | None:
        stmt = select(GitHubConnection).where(GitHubConnection.user_id == user_id)
        return (await db.execute(stmt)).scalar_one_or_none()

    async def get(self, user_id: uuid.UUID) -> GitHubConnection | None:
        async with self._session_factory() as db:
            return await self._get(db, user_id)

    async def save(
        self,
        user_id: uuid.UUID,
        access_token: str,
        refresh_token: str | None = None,
        selected_repo: str | None = None,
    ) -> GitHubConnection:
        async with self._session_factory() as db:
            connection = await self._get(db, user_id)
            if connection is None:
                connection = GitHubConnection(user_id=user_id, added_repos=[])
                db.add(connection)

            connection.access_token = access_token
            connection.refresh_token = refresh_token
            if selected_repo:
                connection.selected_repo = selected_repo
                if selected_repo not in (connection.added_repos or []):
                    connection.added_repos = [*(connection.added_repos or []), selected_repo]
            await db.commit()

        logger.info("Saved GitHub connection for user %s", user_id)
        return connection

    async def delete(self, user_id: uuid.UUID) -> None:
        async with self._session_factory() as db:
            connection = await self._get(db, user_id)
            if connection is not None:
                await db.delete(connection)
                await db.commit()

    async def update_selected_repo(self, user_id: uuid.UUID, repo_full_name: str) -> bool:
        """False when the user has no GitHub connection."""
        async with self._session_factory() as db:
            connection = await self._get(db, user_id)
            if connection is None:
                return False
            connection.selected_repo = repo_full_name
            if repo_full_name not in (connection.added_repos or []):
                # reassign so the JSON column is flagged dirty
                connection.added_repos = [*(connection.added_repos or []), repo_full_name]
            await db.commit()
        return True

    async def add_repository(self, user_id: uuid.UUID, repo_full_name: str) -> None:
        async with self._session_factory() as db:
            connection = await self._get(db, user_id)
            if connection is None or repo_full_name in (connection.added_repos or []):
                return
            connection.added_repos = [*(connection.added_repos or []), repo_full_name]
            await db.commit()

    async def remove_repository(self, user_id: uuid.UUID, repo_full_name: str) -> None:
        async with self._session_factory() as db:
            connection = await self._get(db, user_id)
            if connection is None:
                return
            connection.added_repos = [r for r in (connection.added_repos or []) if r != repo_full_name]
            if connection.selected_repo == repo_full_name:
                connection.selected_repo = None
            await db.commit()
