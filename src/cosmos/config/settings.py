"""
Application settings using Pydantic.

Provides environment-based configuration loading with COSMOS_ prefix.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = "postgresql+psycopg://localhost/cosmos"
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_pool_timeout: int = 30
    db_pool_recycle: int = 1800

    # Debug
    debug: bool = False

    # Environment
    environment: str = "development"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = []

    # GitHub
    github_api_url: str = "https://api.github.com"
    github_token: str | None = None

    # HTTP client settings
    http_timeout: int = 30

    # Per-token repository clients (bounded, entries expire after the TTL)
    git_client_cache_size: int = 128
    git_client_cache_ttl: int = 3600

    # Monitoring behaviour
    diff_min_severity: str = "info"  # info, warning, breaking
    prune_stale_edges: bool = False

    # Sentinel (periodic re-monitoring)
    sentinel_enabled: bool = True
    sentinel_interval: int = 300
    sentinel_workers: int = 4
    sentinel_max_attempts: int = 3
    sentinel_retry_wait: float = 1.0
    monitoring_run_timeout: float = 120.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "COSMOS_"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
