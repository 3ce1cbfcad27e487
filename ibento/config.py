"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - MONGODB_URI is required; get_settings() raises ConfigurationError without it
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults match the original deployment (database "test", collection "events",
      port 8000, 100 requests per 15 minutes)
"""

from functools import lru_cache

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ibento.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, extra="ignore",
    )

    # Database
    mongodb_uri: str
    mongodb_database: str = "test"
    mongodb_collection: str = "events"

    @field_validator("mongodb_uri")
    @classmethod
    def require_uri(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("mongodb_uri cannot be blank")
        return v

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # HTTP edge
    cors_origins: list[str] = ["https://ibento.co"]
    rate_limit_window_seconds: int = 15 * 60
    rate_limit_max_requests: int = 100
    max_body_bytes: int = 100 * 1024
    gzip_minimum_size: int = 1024

    # ADR: no ceiling by default, same as the original service
    max_page_limit: int | None = None

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    try:
        return Settings()
    except ValidationError as e:
        missing = [
            ".".join(str(loc) for loc in err["loc"]) for err in e.errors()
        ]
        raise ConfigurationError(
            f"Invalid configuration: {', '.join(missing)}", missing,
        ) from e
