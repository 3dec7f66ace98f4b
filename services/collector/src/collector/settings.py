"""Collector service configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class CollectorSettings(BaseSettings):
    """Collector service configuration."""

    # Spotify credentials
    SPOTIFY_CLIENT_ID: str = ""
    SPOTIFY_CLIENT_SECRET: str = ""

    # Encryption
    TOKEN_ENCRYPTION_KEY: str = ""

    # Live sync
    COLLECTOR_INTERVAL_SECONDS: int = 300
    TOKEN_EXPIRY_BUFFER_SECONDS: int = 60
    RECENTLY_PLAYED_LIMIT: int = 50

    model_config = {"env_prefix": ""}
