"""Application configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings

from trials_intelligence.constants import (
    CACHE_TTL_SECONDS,
    CLINICAL_TRIALS_BASE_URL,
    DEFAULT_TIMEOUT_MS,
    NCBI_BASE_URL,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Upstream endpoints
    clinical_trials_base_url: str = CLINICAL_TRIALS_BASE_URL
    pubmed_base_url: str = NCBI_BASE_URL

    # Fetch gateway
    http_timeout_ms: int = DEFAULT_TIMEOUT_MS

    # Response cache
    cache_disabled: bool = False
    cache_ttl_seconds: float = CACHE_TTL_SECONDS

    # App Settings
    debug: bool = False
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        frozen = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
