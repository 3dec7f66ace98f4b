"""Centralized constants for the API service."""

from dataclasses import dataclass

# --- Application metadata ---

APP_TITLE = "Listening Timeline API"
APP_DESCRIPTION = "History file imports, cross-source deduplication and timeline stats"
APP_VERSION = "0.1.0"


# --- Route configuration ---


@dataclass(frozen=True, slots=True)
class _Route:
    """A route prefix paired with its OpenAPI tag."""

    prefix: str
    tag: str


class Routes:
    """API route prefixes and tags."""

    TIMELINE = _Route("/users", "timeline")
    HEALTH = "/healthz"


# Default configuration values
DEFAULT_IMPORT_MAX_UPLOAD_MB = 50
UPLOAD_CHUNK_SIZE = 1024 * 1024
