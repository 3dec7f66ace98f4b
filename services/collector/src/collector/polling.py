"""Live sync: fetches recently-played and stores them as authoritative plays."""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from collector.settings import CollectorSettings
from collector.tokens import CollectorTokenManager
from shared.db.enums import PlaySource, SyncStatus
from shared.db.models.operations import SyncCheckpoint
from shared.db.operations import PlayRepository
from shared.spotify.client import SpotifyClient
from shared.spotify.models import SpotifyPlayHistoryItem
from shared.timeline.constants import UNKNOWN_ARTIST_NAME, UNKNOWN_TRACK_NAME
from shared.timeline.identity import track_identity
from shared.timeline.models import PlayCandidate
from shared.timeline.timestamps import as_utc

logger = logging.getLogger(__name__)


def to_live_play(item: SpotifyPlayHistoryItem, user_id: int) -> PlayCandidate | None:
    """Map one recently-played item to a live play; None if it lacks a track or time."""
    if item.track is None or item.played_at is None:
        return None
    track = item.track
    track_name = track.name or UNKNOWN_TRACK_NAME
    artist_name = track.primary_artist_name or UNKNOWN_ARTIST_NAME
    # Local files have no Spotify id; the name identity keeps re-polls idempotent
    return PlayCandidate(
        user_id=user_id,
        track_id=track.id or track_identity(track_name, artist_name),
        track_name=track_name,
        artist_name=artist_name,
        album=track.album.name if track.album else None,
        duration_ms=max(track.duration_ms or 0, 0),
        played_at=as_utc(item.played_at),
        source=PlaySource.LIVE,
    )


class PollingService:
    """Polls Spotify's recently-played endpoint for a user and stores the results.

    Live plays are never filtered against imports; re-polling the same
    window is absorbed by the (user_id, track_id, played_at) conflict key.
    """

    def __init__(
        self,
        settings: CollectorSettings,
        token_manager: CollectorTokenManager | None = None,
        repository: PlayRepository | None = None,
    ) -> None:
        self._settings = settings
        self._token_manager = token_manager or CollectorTokenManager(settings)
        self._repo = repository or PlayRepository()

    async def poll_user(
        self,
        user_id: int,
        session: AsyncSession,
    ) -> tuple[int, int]:
        """Poll recently-played for a single user.

        Returns (inserted_count, skipped_count).
        """
        checkpoint = await self._get_or_create_checkpoint(user_id, session)

        try:
            checkpoint.last_poll_started_at = datetime.now(UTC)
            checkpoint.status = SyncStatus.SYNCING
            await session.flush()

            access_token = await self._token_manager.get_valid_token(user_id, session)

            async def _on_token_expired() -> str:
                return await self._token_manager.refresh_access_token(user_id, session)

            client = SpotifyClient(access_token=access_token, on_token_expired=_on_token_expired)
            response = await client.get_recently_played(limit=self._settings.RECENTLY_PLAYED_LIMIT)
            logger.info("Fetched %d recently-played items for user %d", len(response.items), user_id)

            plays = [play for item in response.items if (play := to_live_play(item, user_id)) is not None]
            invalid = len(response.items) - len(plays)
            if invalid:
                logger.info("Skipped %d recently-played items without track or timestamp", invalid)

            inserted = await self._repo.insert_or_ignore_plays([p.to_row() for p in plays], session)
            skipped = len(response.items) - inserted

            checkpoint.last_poll_completed_at = datetime.now(UTC)
            checkpoint.status = SyncStatus.IDLE
            checkpoint.error_message = None
            if plays:
                latest = max(p.played_at for p in plays)
                previous = checkpoint.last_poll_latest_played_at
                if previous is None or latest > as_utc(previous):
                    checkpoint.last_poll_latest_played_at = latest
            await session.flush()

            logger.info("Poll complete for user %d: %d inserted, %d skipped", user_id, inserted, skipped)
            return inserted, skipped

        except Exception as exc:
            checkpoint.status = SyncStatus.ERROR
            checkpoint.error_message = str(exc)[:500]
            await session.flush()
            raise

    async def _get_or_create_checkpoint(
        self,
        user_id: int,
        session: AsyncSession,
    ) -> SyncCheckpoint:
        """Get or create a SyncCheckpoint for the user."""
        result = await session.execute(select(SyncCheckpoint).where(SyncCheckpoint.user_id == user_id))
        checkpoint = result.scalar_one_or_none()
        if checkpoint is None:
            checkpoint = SyncCheckpoint(user_id=user_id)
            session.add(checkpoint)
            await session.flush()
        return checkpoint
