"""Error taxonomy for timeline ingestion and reconciliation."""


class TimelineError(Exception):
    """Base exception for timeline errors.

    ``code`` is the stable name surfaced to callers in ``ImportResult.error_code``.
    """

    code = "TimelineError"


class InvalidTimestamp(TimelineError):
    """A raw export timestamp could not be interpreted."""

    code = "InvalidTimestamp"

    def __init__(self, raw: object) -> None:
        self.raw = raw
        super().__init__(f"Invalid timestamp: {raw!r}")


class InvalidFormat(TimelineError):
    """An uploaded history file failed validation."""

    code = "InvalidFormat"

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class DuplicateUpload(TimelineError):
    """Byte-identical content was already imported for this user."""

    code = "DuplicateUpload"

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"This file has already been uploaded: {filename}")


class AllDuplicates(TimelineError):
    """Every candidate play duplicated an existing live play."""

    code = "AllDuplicates"

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"All {count} plays were filtered out as duplicates of existing live data")


class StoreUnavailable(TimelineError):
    """A query, insert or delete against the store failed."""

    code = "StoreUnavailable"

    def __init__(self, operation: str, detail: str = "") -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Store unavailable during {operation}" + (f": {detail}" if detail else ""))
