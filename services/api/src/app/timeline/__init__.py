"""Timeline endpoints: imports, deduplication and stats."""

from app.timeline.router import router

__all__ = ["router"]
