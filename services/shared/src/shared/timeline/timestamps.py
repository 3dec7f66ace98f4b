"""Timestamp normalization for export records."""

import re
from datetime import UTC, datetime

from shared.timeline.exceptions import InvalidTimestamp

# Account-data exports write endTime as UTC without a zone marker
EXPORT_TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M"

# strptime alone accepts unpadded fields and extra whitespace
_EXPORT_TIMESTAMP_SHAPE = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}", re.ASCII)


def to_absolute_time(raw: object) -> datetime:
    """Parse an export ``endTime`` ("2023-12-27 10:30") as a UTC instant.

    Seconds are always zero. Raises InvalidTimestamp unless the input is a
    zero-padded string of exactly that shape with in-range components.
    """
    if not isinstance(raw, str) or not _EXPORT_TIMESTAMP_SHAPE.fullmatch(raw):
        raise InvalidTimestamp(raw)
    try:
        parsed = datetime.strptime(raw, EXPORT_TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise InvalidTimestamp(raw) from exc
    return parsed.replace(tzinfo=UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops the zone on read)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def to_iso(value: datetime) -> str:
    """Canonical ISO-8601 rendering with a trailing ``Z``."""
    return as_utc(value).isoformat().replace("+00:00", "Z")
