"""Reconciliation and import settings."""

from pydantic_settings import BaseSettings

from shared.config.constants import (
    DEFAULT_DEDUP_WINDOW_SECONDS,
    DEFAULT_IMPORT_BATCH_SIZE,
    DEFAULT_IMPORT_FILENAME_PREFIX,
)


class TimelineSettings(BaseSettings):
    """Tunables for the matcher, reconciler and import pipeline."""

    DEDUP_WINDOW_SECONDS: float = DEFAULT_DEDUP_WINDOW_SECONDS
    IMPORT_BATCH_SIZE: int = DEFAULT_IMPORT_BATCH_SIZE
    IMPORT_FILENAME_PREFIX: str = DEFAULT_IMPORT_FILENAME_PREFIX

    model_config = {"env_prefix": ""}
