"""Pydantic response models for timeline endpoints."""

from datetime import datetime

from pydantic import BaseModel

from shared.db.models.operations import UploadRecord


class UploadRecordResponse(BaseModel):
    """One row of a user's import history."""

    id: int
    filename: str
    content_hash: str
    status: str
    total_plays: int
    inserted_plays: int
    duplicates_removed: int
    parse_errors: int
    insert_errors: int
    error_message: str | None
    uploaded_at: datetime

    @classmethod
    def from_record(cls, record: UploadRecord) -> "UploadRecordResponse":
        return cls(
            id=record.id,
            filename=record.filename,
            content_hash=record.content_hash,
            status=record.status.value,
            total_plays=record.total_plays,
            inserted_plays=record.inserted_plays,
            duplicates_removed=record.duplicates_removed,
            parse_errors=record.parse_errors,
            insert_errors=record.insert_errors,
            error_message=record.error_message,
            uploaded_at=record.uploaded_at,
        )


class TrackingStats(BaseModel):
    """Headline numbers for a user's timeline."""

    total_plays: int
    live_plays: int
    imported_plays: int
    last_play_at: datetime | None
