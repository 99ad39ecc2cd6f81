"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The database connection and the access code have no defaults, so a
    missing value fails container construction before anything is served.
    """

    supabase_url: str
    supabase_service_key: str
    access_code: str
    environment: str = _ENVIRONMENT
    session_backend: str = "memory"
    session_ttl_seconds: int = 24 * 60 * 60
    max_upload_bytes: int = 15 * 1024 * 1024
    image_max_edge: int = 800
    image_quality: int = 85
    thumbnail_size: int = 100
    thumbnail_quality: int = 70
    cors_origins: str | None = None
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_cors_origins(raw: str | None) -> list[str]:
    """Parse a comma-separated list of allowed CORS origins."""
    if raw is None:
        return []
    return [origin.strip() for origin in raw.split(",") if origin.strip()]
