"""Operational models: SyncCheckpoint, UploadRecord."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.db.base import Base, enum_values, utc_now
from shared.db.enums import SyncStatus, UploadStatus

if TYPE_CHECKING:
    from shared.db.models.user import User


class SyncCheckpoint(Base):
    """Per-user live sync state."""

    __tablename__ = "sync_checkpoints"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    status: Mapped[SyncStatus] = mapped_column(
        SQLEnum(SyncStatus, values_callable=enum_values),
        nullable=False,
        default=SyncStatus.IDLE,
    )

    last_poll_started_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_poll_completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    last_poll_latest_played_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    error_message: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="sync_checkpoint")


class UploadRecord(Base):
    """Append-only provenance of one accepted history file import."""

    __tablename__ = "import_uploads"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    filename: Mapped[str] = mapped_column(String(500), nullable=False)
    content_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[UploadStatus] = mapped_column(
        SQLEnum(UploadStatus, values_callable=enum_values),
        nullable=False,
        default=UploadStatus.COMPLETED,
    )

    total_plays: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    inserted_plays: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    duplicates_removed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    parse_errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    insert_errors: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    error_message: Mapped[str | None] = mapped_column(Text)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="uploads")

    __table_args__ = (
        UniqueConstraint("user_id", "content_hash", name="uq_import_uploads_user_hash"),
        Index("ix_import_uploads_user_id", "user_id"),
        Index("ix_import_uploads_uploaded_at", "uploaded_at"),
    )
