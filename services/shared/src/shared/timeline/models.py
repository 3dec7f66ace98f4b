"""Data models passed between the matcher, reconciler and import pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field, computed_field

from shared.db.base import utc_now
from shared.db.enums import PlaySource


class PlayCandidate(BaseModel):
    """A play that has been parsed but not yet persisted."""

    user_id: int
    track_id: str | None = None
    track_name: str
    artist_name: str
    album: str | None = None
    duration_ms: int = Field(ge=0)
    played_at: datetime  # timezone-aware UTC
    source: PlaySource

    def to_row(self) -> dict[str, Any]:
        """Column mapping for an insert-or-ignore statement."""
        return {**self.model_dump(), "created_at": utc_now()}


PlayT = TypeVar("PlayT")


@dataclass(slots=True)
class FilterResult(Generic[PlayT]):
    """Partition of a candidate list into survivors and near-duplicates.

    Holds the caller's own objects (ORM rows or candidates), unchanged.
    """

    kept: list[PlayT] = field(default_factory=list)
    removed: list[PlayT] = field(default_factory=list)

    @property
    def removed_count(self) -> int:
        return len(self.removed)


class ReconcileResult(BaseModel):
    """Outcome of re-checking stored imported plays against live plays."""

    total: int = 0
    removed: int = 0
    remaining: int = 0


class SourceStats(BaseModel):
    """Per-source row counts for one user."""

    total: int = 0
    live: int = 0
    imported: int = 0


class DeduplicationReport(BaseModel):
    """Administrative deduplication pass summary."""

    success: bool
    duration_ms: int
    initial_stats: SourceStats | None = None
    final_stats: SourceStats | None = None
    result: ReconcileResult | None = None
    error: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def removed_duplicates(self) -> int:
        return self.result.removed if self.result else 0


class ImportResult(BaseModel):
    """Structured outcome of one history file import.

    Counts always describe what actually happened: ``inserted_plays`` is
    the number of rows the store reported as written, ``already_present``
    the rows the conflict key ignored.
    """

    success: bool
    filename: str
    total_plays: int = 0
    inserted_plays: int = 0
    duplicates: int = 0
    already_present: int = 0
    parse_errors: int = 0
    insert_errors: int = 0
    errors: list[str] = Field(default_factory=list)
    duration_ms: int = 0
    error: str | None = None
    error_code: str | None = None
