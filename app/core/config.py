"""
App Configuration.

This module defines the application settings using Pydantic Settings.
It loads configuration variables from environment variables and/or a .env file,
ensuring typed and validated settings for the application.

Settings are built once at process start (see `get_settings`) and passed by
reference into the components that need them. Components never read the
environment themselves.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Settings.

    Attributes:
        PROJECT_NAME: The name of the project.
        DATABASE_URL: The connection string for the database.
        VALKEY_URL: Connection URL of the Valkey/Redis server backing the job queue.
        GITHUB_APP_ID: GitHub App identifier used to sign App JWTs.
        GITHUB_APP_PRIVATE_KEY: PEM private key of the GitHub App.
        GITHUB_WEBHOOK_SECRET: Shared secret for X-Hub-Signature-256 verification.
        AI_ENABLED: Whether the AI enrichment stage runs after scoring.
        AI_PROVIDER: Model provider selector. Only "openai" is supported.
        GITHUB_POST_COMMENTS: Whether the AI analysis is posted back to the PR.
    """

    # Core
    PROJECT_NAME: str = "PR Risk Radar"
    DATABASE_URL: str
    LOG_LEVEL: str = "INFO"

    # Queue
    VALKEY_URL: str = "redis://localhost:6379/0"
    JOB_ATTEMPTS: int = 3
    JOB_BACKOFF_SECONDS: float = 2.0

    # Worker
    WORKER_CONCURRENCY: int = 5
    WORKER_RATE_LIMIT_MAX: int = 10
    WORKER_RATE_LIMIT_DURATION: float = 1.0

    # GitHub
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_APP_ID: Optional[str] = None
    GITHUB_APP_PRIVATE_KEY: Optional[str] = None
    GITHUB_WEBHOOK_SECRET: Optional[str] = None
    GITHUB_POST_COMMENTS: bool = False
    GITHUB_MAX_RETRIES: int = 3
    GITHUB_RETRY_BASE_DELAY: float = 1.0

    # AI / Model Providers
    AI_ENABLED: bool = False
    AI_PROVIDER: str = "openai"
    AI_MODEL: Optional[str] = "gpt-4o-mini"
    OPENAI_API_KEY: Optional[str] = None
    AI_TIMEOUT_SECONDS: float = 10.0
    AI_MAX_RETRIES: int = 2
    AI_MAX_DIFF_CHARS: int = 6000

    model_config = SettingsConfigDict(
        env_file=".env", env_ignore_empty=True, extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Build the process-wide settings on first use."""
    return Settings()
