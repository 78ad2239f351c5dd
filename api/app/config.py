# api/app/config.py
from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized application configuration.

    Loads environment variables from `.env` and provides
    typed access across API, worker, and services.
    """

    # ─────────────────────────────────────────────
    # Pydantic Settings Config
    # ─────────────────────────────────────────────
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ─────────────────────────────────────────────
    # Database
    # ─────────────────────────────────────────────
    database_url: str = "postgresql+asyncpg://localhost:5432/issue_forge"

    # ─────────────────────────────────────────────
    # OpenAI (keys are per user, stored encrypted)
    # ─────────────────────────────────────────────
    openai_model: str = "gpt-4o-mini"
    openai_title_model: str = "gpt-4-turbo-preview"
    openai_temperature: float = 0.7
    openai_max_tokens: int = 4096

    # ─────────────────────────────────────────────
    # GitHub
    # ─────────────────────────────────────────────
    github_api_url: str = "https://api.github.com"
    # publishing is not bounded by external_call_timeout; its worst case is
    # github_timeout * github_publish_max_retries
    # + github_publish_initial_delay * (2 ** (github_publish_max_retries - 1) - 1)
    github_timeout: float = Field(15.0, gt=0)
    github_publish_max_retries: int = Field(3, ge=1)
    github_publish_initial_delay: float = Field(1.0, ge=0)

    # ─────────────────────────────────────────────
    # Secrets
    # ─────────────────────────────────────────────
    # Fernet key; generate with scripts/generate_encryption_key.py
    encryption_key: str | None = None
    cron_secret: str | None = None

    # ─────────────────────────────────────────────
    # API
    # ─────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    cors_origins: list[str] = ["*"]
    log_level: str = "INFO"

    # ─────────────────────────────────────────────
    # Jobs / Worker
    # ─────────────────────────────────────────────
    job_max_retries: int = Field(3, ge=0)
    job_retention_hours: int = 24
    process_batch_size: int = 5
    # OpenAI and storage calls made by the job processor
    external_call_timeout: float = Field(120.0, gt=0)

    worker_poll_interval: float = 1.0
    worker_batch_size: int = 10


# ─────────────────────────────────────────────
# Cached Settings Instance
# ─────────────────────────────────────────────
@lru_cache
def get_settings() -> Settings:
    """
    Returns a cached Settings instance so config
    is only loaded once per process.
    """
    return Settings()
