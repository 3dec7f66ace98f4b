"""Application settings loaded from environment variables."""

import functools

from pydantic_settings import BaseSettings

from app.constants import DEFAULT_IMPORT_MAX_UPLOAD_MB


class AppSettings(BaseSettings):
    """API service configuration."""

    # Import uploads
    IMPORT_MAX_UPLOAD_MB: int = DEFAULT_IMPORT_MAX_UPLOAD_MB

    # CORS
    CORS_ALLOWED_ORIGINS: str = "http://localhost:3000"  # comma-separated origins

    model_config = {"env_prefix": ""}


@functools.lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return cached application settings singleton."""
    return AppSettings()
