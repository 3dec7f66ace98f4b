"""Listening timeline core: identities, timestamps and the error taxonomy.

The matcher, reconciler and importer are imported from their own modules
since they depend on the database layer.
"""

from shared.timeline.exceptions import (
    AllDuplicates,
    DuplicateUpload,
    InvalidFormat,
    InvalidTimestamp,
    StoreUnavailable,
    TimelineError,
)
from shared.timeline.identity import content_fingerprint, track_identity
from shared.timeline.timestamps import as_utc, to_absolute_time, to_iso

__all__ = [
    "AllDuplicates",
    "DuplicateUpload",
    "InvalidFormat",
    "InvalidTimestamp",
    "StoreUnavailable",
    "TimelineError",
    "as_utc",
    "content_fingerprint",
    "to_absolute_time",
    "to_iso",
    "track_identity",
]
