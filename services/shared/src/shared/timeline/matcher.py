"""Near-duplicate matcher: probes for live plays close to a timestamp."""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.constants import DEFAULT_DEDUP_WINDOW_SECONDS
from shared.db.operations import PlayRepository
from shared.timeline.exceptions import StoreUnavailable
from shared.timeline.timestamps import to_iso

logger = logging.getLogger(__name__)


class NearDuplicateMatcher:
    """Decides whether a play already exists in the live stream.

    The window is symmetric and inclusive: with the default of 5 seconds a
    live play at exactly ``timestamp + 5s`` matches, one at ``+5.001s`` does
    not. The probe is read-only and fails open: if the store cannot answer,
    the candidate is reported as having no match so imported data is kept
    rather than dropped on a guess.
    """

    def __init__(
        self,
        repository: PlayRepository | None = None,
        window_seconds: float = DEFAULT_DEDUP_WINDOW_SECONDS,
    ) -> None:
        self._repo = repository or PlayRepository()
        self._window = timedelta(seconds=window_seconds)

    @property
    def window(self) -> timedelta:
        return self._window

    async def has_nearby_live_play(
        self,
        user_id: int,
        timestamp: datetime,
        session: AsyncSession,
    ) -> bool:
        """True if the user has at least one live play within the window of ``timestamp``.

        Each probe runs in its own savepoint so a failed query does not
        poison the caller's transaction for the probes that follow.
        """
        try:
            async with session.begin_nested():
                return await self._repo.live_play_exists(
                    user_id,
                    timestamp - self._window,
                    timestamp + self._window,
                    session,
                )
        except (StoreUnavailable, SQLAlchemyError) as exc:
            logger.warning(
                "Near-duplicate check failed for user %d at %s, keeping play: %s",
                user_id,
                to_iso(timestamp),
                exc,
            )
            return False
