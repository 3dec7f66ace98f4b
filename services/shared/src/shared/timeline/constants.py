"""Constants for history file imports."""

import re

# Fields every account-data export record carries
REQUIRED_EXPORT_FIELDS = ("endTime", "trackName", "artistName", "msPlayed")

# Stand-ins when an export record has no names
UNKNOWN_TRACK_NAME = "Unknown Track"
UNKNOWN_ARTIST_NAME = "Unknown Artist"


def export_filename_pattern(prefix: str) -> re.Pattern[str]:
    """``<prefix>*.json``, e.g. StreamingHistory0.json or StreamingHistory_music_2.json."""
    return re.compile(rf"{re.escape(prefix)}.*\.json", re.IGNORECASE)
