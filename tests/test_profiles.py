# tests/test_profiles.py
"""
Profile and GitHub connection stores.
"""
import uuid

import pytest
from cryptography.fernet import Fernet

from api.app.config import get_settings
from services.crypto import decrypt_secret, encrypt_secret
from services.profiles import ProfileStore


def test_encrypt_secret_roundtrip(encryption_key):
    token = encrypt_secret("sk-live-123", encryption_key)

    assert token != "sk-live-123"
    assert decrypt_secret(token, encryption_key) == "sk-live-123"


@pytest.mark.asyncio
async def test_openai_key_is_encrypted_at_rest(profiles, user_id):
    await profiles.set_openai_key(user_id, "sk-live-123")

    profile = await profiles.get(user_id)
    assert profile.openai_api_key != "sk-live-123"
    assert profile.openai_key_added_at is not None
    assert await profiles.get_openai_key(user_id) == "sk-live-123"


@pytest.mark.asyncio
async def test_openai_key_replace_and_remove(profiles, user_id):
    await profiles.set_openai_key(user_id, "sk-old")
    await profiles.set_openai_key(user_id, "sk-new")
    assert await profiles.get_openai_key(user_id) == "sk-new"

    await profiles.remove_openai_key(user_id)
    assert await profiles.get_openai_key(user_id) is None
    assert (await profiles.get(user_id)).openai_key_added_at is None


@pytest.mark.asyncio
async def test_openai_key_unreadable_with_other_key(profiles, session_factory, user_id):
    await profiles.set_openai_key(user_id, "sk-live-123")

    other = ProfileStore(session_factory, Fernet.generate_key().decode())
    assert await other.get_openai_key(user_id) is None


@pytest.mark.asyncio
async def test_openai_key_missing_profile(profiles):
    assert await profiles.get_openai_key(uuid.uuid4()) is None


@pytest.mark.asyncio
async def test_usage_stats_accumulate(profiles, user_id):
    await profiles.set_openai_key(user_id, "sk-live-123")

    await profiles.update_usage_stats(user_id, 100, 0.001)
    await profiles.update_usage_stats(user_id, 50, 0.0005)

    stats = await profiles.get_usage_stats(user_id)
    assert stats["total_tokens"] == 150
    assert stats["total_cost"] == pytest.approx(0.0015)
    assert stats["last_used"] is not None


@pytest.mark.asyncio
async def test_usage_stats_without_profile(profiles):
    missing = uuid.uuid4()

    await profiles.update_usage_stats(missing, 100, 0.001)

    assert await profiles.get_usage_stats(missing) == {"total_tokens": 0, "total_cost": 0.0, "last_used": None}


@pytest.mark.asyncio
async def test_github_connection_save_and_update(connections, user_id):
    assert await connections.get(user_id) is None

    await connections.save(user_id, "gh-1", selected_repo="octo/app")
    await connections.save(user_id, "gh-2", refresh_token="r-2")

    connection = await connections.get(user_id)
    assert connection.access_token == "gh-2"
    assert connection.refresh_token == "r-2"
    assert connection.selected_repo == "octo/app"
    assert connection.added_repos == ["octo/app"]


@pytest.mark.asyncio
async def test_github_connection_repositories(connections, user_id):
    await connections.save(user_id, "gh-1", selected_repo="octo/app")

    await connections.add_repository(user_id, "octo/api")
    await connections.add_repository(user_id, "octo/api")
    await connections.update_selected_repo(user_id, "octo/web")
    assert (await connections.get(user_id)).added_repos == ["octo/app", "octo/api", "octo/web"]

    await connections.remove_repository(user_id, "octo/web")
    connection = await connections.get(user_id)
    assert connection.added_repos == ["octo/app", "octo/api"]
    assert connection.selected_repo is None

    await connections.delete(user_id)
    assert await connections.get(user_id) is None


@pytest.mark.asyncio
async def test_missing_encryption_key_is_not_hidden(profiles, session_factory, user_id, monkeypatch):
    await profiles.set_openai_key(user_id, "sk-live-123")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    get_settings.cache_clear()
    unkeyed = ProfileStore(session_factory)

    try:
        with pytest.raises(ValueError, match="ENCRYPTION_KEY"):
            await unkeyed.get_openai_key(user_id)
    finally:
        get_settings.cache_clear()
