"""Listening timeline models: Play."""

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from shared.db.base import Base, enum_values, utc_now
from shared.db.enums import PlaySource

if TYPE_CHECKING:
    from shared.db.models.user import User


class Play(Base):
    """One listening event (unique on user_id, track_id, played_at).

    ``track_id`` holds the native Spotify id for live plays and the
    name/artist identity hash for imported plays.
    """

    __tablename__ = "plays"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    track_id: Mapped[str | None] = mapped_column(String(255))
    track_name: Mapped[str] = mapped_column(String(500), nullable=False)
    artist_name: Mapped[str] = mapped_column(String(500), nullable=False)
    album: Mapped[str | None] = mapped_column(String(500))
    duration_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    played_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[PlaySource] = mapped_column(
        SQLEnum(PlaySource, values_callable=enum_values),
        nullable=False,
        default=PlaySource.LIVE,
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utc_now)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="plays")

    __table_args__ = (
        UniqueConstraint("user_id", "track_id", "played_at", name="uq_plays_user_track_played"),
        Index("ix_plays_user_played_at", "user_id", "played_at"),
        Index("ix_plays_user_source_played_at", "user_id", "source", "played_at"),
    )
