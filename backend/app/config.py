"""Application Configuration - environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache), single instance per process
    - sync_max_reconnect_attempts defaults to 5 (give-up cap of the synchronization client)

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

from app.core.domain_types import EXCERPT_LENGTH, MAX_RECONNECT_ATTEMPTS


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://blog:blog@db:5432/blog"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs use postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Posts
    excerpt_length: int = EXCERPT_LENGTH
    default_page_size: int = 10
    max_page_size: int = 100

    # Realtime (server side)
    realtime_queue_size: int = 256
    realtime_heartbeat_seconds: float = 15.0

    # Synchronization client
    api_base_url: str = "http://localhost:8000"
    sync_max_reconnect_attempts: int = MAX_RECONNECT_ATTEMPTS
    sync_base_delay_ms: int = 1000
    sync_max_delay_ms: int = 30_000
    http_timeout_seconds: float = 30.0

    # API
    cors_origins: list[str] = ["http://localhost:8080", "http://localhost:3000"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
