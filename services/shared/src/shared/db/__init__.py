"""Shared database package -- convenience re-exports.

Importing this module registers all models with Base.metadata.
"""

from shared.db.base import Base
from shared.db.enums import PlaySource, SyncStatus, UploadStatus
from shared.db.models import Play, SpotifyToken, SyncCheckpoint, UploadRecord, User
from shared.db.operations import PlayRepository
from shared.db.session import DatabaseManager

__all__ = [
    # Base
    "Base",
    # Enums
    "PlaySource",
    "SyncStatus",
    "UploadStatus",
    # Models
    "Play",
    "SpotifyToken",
    "SyncCheckpoint",
    "UploadRecord",
    "User",
    # Session
    "DatabaseManager",
    # Operations
    "PlayRepository",
]
