"""Initial listening timeline schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

"""

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users, tokens, checkpoints, plays and upload provenance tables."""

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("spotify_user_id", sa.String(255), nullable=False),
        sa.Column("display_name", sa.String(255), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
    )
    op.create_index("ix_users_spotify_user_id", "users", ["spotify_user_id"], unique=True)

    # Spotify tokens table
    op.create_table(
        "spotify_tokens",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("encrypted_refresh_token", sa.Text(), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_spotify_tokens_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_spotify_tokens"),
    )
    op.create_index("ix_spotify_tokens_user_id", "spotify_tokens", ["user_id"], unique=True)

    # Sync checkpoints table
    op.create_table(
        "sync_checkpoints",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("status", sa.Enum("idle", "paused", "syncing", "error", name="syncstatus"), nullable=False),
        sa.Column("last_poll_started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_poll_completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_poll_latest_played_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_sync_checkpoints_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_sync_checkpoints"),
        sa.UniqueConstraint("user_id", name="uq_sync_checkpoints_user_id"),
    )

    # Plays table: live and imported listening events on one timeline
    op.create_table(
        "plays",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("track_id", sa.String(255), nullable=True),
        sa.Column("track_name", sa.String(500), nullable=False),
        sa.Column("artist_name", sa.String(500), nullable=False),
        sa.Column("album", sa.String(500), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("played_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("source", sa.Enum("live", "imported", name="playsource"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_plays_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_plays"),
        sa.UniqueConstraint("user_id", "track_id", "played_at", name="uq_plays_user_track_played"),
    )
    op.create_index("ix_plays_user_played_at", "plays", ["user_id", "played_at"])
    op.create_index("ix_plays_user_source_played_at", "plays", ["user_id", "source", "played_at"])

    # Upload provenance table
    op.create_table(
        "import_uploads",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.BigInteger(), nullable=False),
        sa.Column("filename", sa.String(500), nullable=False),
        sa.Column("content_hash", sa.String(64), nullable=False),
        sa.Column("status", sa.Enum("completed", "partial", name="uploadstatus"), nullable=False),
        sa.Column("total_plays", sa.Integer(), nullable=False),
        sa.Column("inserted_plays", sa.Integer(), nullable=False),
        sa.Column("duplicates_removed", sa.Integer(), nullable=False),
        sa.Column("parse_errors", sa.Integer(), nullable=False),
        sa.Column("insert_errors", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["user_id"], ["users.id"], ondelete="CASCADE", name="fk_import_uploads_user_id_users"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_import_uploads"),
        sa.UniqueConstraint("user_id", "content_hash", name="uq_import_uploads_user_hash"),
    )
    op.create_index("ix_import_uploads_user_id", "import_uploads", ["user_id"])
    op.create_index("ix_import_uploads_uploaded_at", "import_uploads", ["uploaded_at"])


def downgrade() -> None:
    """Drop all tables and enum types."""
    op.drop_table("import_uploads")
    op.drop_table("plays")
    op.drop_table("sync_checkpoints")
    op.drop_table("spotify_tokens")
    op.drop_table("users")

    # Drop enums (one at a time for asyncpg compatibility)
    op.execute("DROP TYPE IF EXISTS uploadstatus")
    op.execute("DROP TYPE IF EXISTS playsource")
    op.execute("DROP TYPE IF EXISTS syncstatus")
