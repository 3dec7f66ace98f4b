"""Re-export all model classes."""

from shared.db.models.music import Play
from shared.db.models.operations import SyncCheckpoint, UploadRecord
from shared.db.models.user import SpotifyToken, User

__all__ = [
    "Play",
    "SpotifyToken",
    "SyncCheckpoint",
    "UploadRecord",
    "User",
]
