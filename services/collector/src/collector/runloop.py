"""Collector run loop: the periodic trigger for live sync."""

import asyncio
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from collector.polling import PollingService
from collector.settings import CollectorSettings
from shared.db.enums import SyncStatus
from shared.db.models.user import User
from shared.db.session import DatabaseManager

logger = logging.getLogger(__name__)


class CollectorRunLoop:
    """Polls every active user once per interval until shutdown."""

    def __init__(
        self,
        settings: CollectorSettings,
        db_manager: DatabaseManager,
        polling_service: PollingService | None = None,
    ) -> None:
        self._settings = settings
        self._db_manager = db_manager
        self._polling_service = polling_service or PollingService(settings)

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Main loop: run cycles until shutdown_event is set."""
        logger.info("Collector run loop starting (interval=%ds)", self._settings.COLLECTOR_INTERVAL_SECONDS)

        while not shutdown_event.is_set():
            try:
                await self.run_cycle()
            except Exception:
                logger.exception("Unhandled error in collector cycle")

            # Sleep in small increments so we can respond to shutdown quickly
            for _ in range(self._settings.COLLECTOR_INTERVAL_SECONDS):
                if shutdown_event.is_set():
                    break
                await asyncio.sleep(1)

        logger.info("Collector run loop shutting down")

    async def run_cycle(self) -> dict[int, tuple[int, int] | BaseException]:
        """Poll each active user once. Per-user failures are logged and returned, not raised."""
        async with self._db_manager.session() as session:
            users = await self._get_active_users(session)

        if not users:
            logger.info("No active users found, skipping cycle")
            return {}

        logger.info("Polling %d active user(s)", len(users))
        outcomes: dict[int, tuple[int, int] | BaseException] = {}
        for user_id in users:
            try:
                async with self._db_manager.session() as session:
                    outcomes[user_id] = await self._polling_service.poll_user(user_id, session)
            except Exception as exc:
                logger.error("Error polling user %d: %s", user_id, exc)
                outcomes[user_id] = exc

        logger.info("Collector cycle complete")
        return outcomes

    async def _get_active_users(self, session: AsyncSession) -> list[int]:
        """IDs of users with a stored token whose sync is not paused."""
        result = await session.execute(select(User).options(selectinload(User.sync_checkpoint)).join(User.token))
        users = result.scalars().all()

        active_user_ids: list[int] = []
        for user in users:
            if user.sync_checkpoint and user.sync_checkpoint.status == SyncStatus.PAUSED:
                logger.debug("Skipping paused user %d", user.id)
                continue
            active_user_ids.append(user.id)

        return active_user_ids
