"""Database enums for the listening timeline."""

import enum


class PlaySource(enum.StrEnum):
    """Where a play record came from.

    ``LIVE`` plays are authoritative; ``IMPORTED`` plays are subject to
    cross-source deduplication against them.
    """

    LIVE = "live"
    IMPORTED = "imported"


class UploadStatus(enum.StrEnum):
    """Outcome recorded on an upload provenance row."""

    COMPLETED = "completed"
    PARTIAL = "partial"


class SyncStatus(enum.StrEnum):
    """Live sync status for users."""

    IDLE = "idle"
    PAUSED = "paused"
    SYNCING = "syncing"
    ERROR = "error"
