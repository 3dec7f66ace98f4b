"""Batch reconciler: removes imported plays that duplicate live plays."""

import logging
import time
from collections.abc import Sequence
from datetime import datetime
from typing import Protocol, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from shared.db.enums import PlaySource
from shared.db.operations import PlayRepository
from shared.timeline.exceptions import StoreUnavailable
from shared.timeline.matcher import NearDuplicateMatcher
from shared.timeline.models import (
    DeduplicationReport,
    FilterResult,
    ReconcileResult,
    SourceStats,
)
from shared.timeline.timestamps import to_iso

logger = logging.getLogger(__name__)


class PlayLike(Protocol):
    """Anything carrying the fields the matcher needs (ORM rows, candidates)."""

    @property
    def user_id(self) -> int: ...

    @property
    def played_at(self) -> datetime: ...

    @property
    def source(self) -> PlaySource: ...


PlayT = TypeVar("PlayT", bound=PlayLike)


class PlayReconciler:
    """Filters imported plays against the authoritative live stream."""

    def __init__(
        self,
        matcher: NearDuplicateMatcher | None = None,
        repository: PlayRepository | None = None,
    ) -> None:
        self._repo = repository or PlayRepository()
        self._matcher = matcher or NearDuplicateMatcher(self._repo)

    async def filter_against_live(
        self,
        candidates: Sequence[PlayT],
        session: AsyncSession,
    ) -> FilterResult[PlayT]:
        """Split candidates into kept and removed, preserving input order.

        Only imported candidates are checked; any other source passes
        through untouched.
        """
        result: FilterResult[PlayT] = FilterResult()
        for play in candidates:
            if play.source != PlaySource.IMPORTED:
                result.kept.append(play)
                continue

            if await self._matcher.has_nearby_live_play(play.user_id, play.played_at, session):
                logger.debug("Dropping imported play at %s: live play nearby", to_iso(play.played_at))
                result.removed.append(play)
            else:
                result.kept.append(play)

        if candidates:
            logger.info(
                "Filtered %d plays: %d kept, %d removed as duplicates",
                len(candidates),
                len(result.kept),
                result.removed_count,
            )
        return result

    async def reconcile_existing_imports(self, user_id: int, session: AsyncSession) -> ReconcileResult:
        """Re-check every stored imported play and delete those shadowed by live plays.

        Deletion is by store id in a single statement. Running this twice in
        a row removes nothing the second time.

        Raises:
            StoreUnavailable: If the imported plays cannot be loaded or deleted.
        """
        imported = await self._repo.find_plays(user_id, session, source=PlaySource.IMPORTED, ascending=True)
        if not imported:
            logger.info("No imported plays to reconcile for user %d", user_id)
            return ReconcileResult()

        logger.info("Checking %d imported plays for user %d", len(imported), user_id)
        filtered = await self.filter_against_live(imported, session)

        deleted = 0
        if filtered.removed:
            ids = [play.id for play in filtered.removed]
            deleted = await self._repo.delete_imported_plays(ids, session)
            if deleted != filtered.removed_count:
                logger.warning(
                    "Flagged %d imported plays for user %d but deleted %d",
                    filtered.removed_count,
                    user_id,
                    deleted,
                )
            logger.info("Removed %d duplicate imported plays for user %d", deleted, user_id)

        # Counts reflect the rows the store actually deleted
        return ReconcileResult(
            total=len(imported),
            removed=deleted,
            remaining=len(imported) - deleted,
        )

    async def source_stats(self, user_id: int, session: AsyncSession) -> SourceStats:
        counts = await self._repo.count_by_source(user_id, session)
        live = counts[PlaySource.LIVE]
        imported = counts[PlaySource.IMPORTED]
        return SourceStats(total=live + imported, live=live, imported=imported)

    async def run_deduplication(self, user_id: int, session: AsyncSession) -> DeduplicationReport:
        """Full administrative pass with before/after stats.

        Store failures are reported in the returned report, not raised.
        """
        started = time.monotonic()
        logger.info("Starting deduplication for user %d", user_id)
        try:
            initial = await self.source_stats(user_id, session)
            result = await self.reconcile_existing_imports(user_id, session)
            final = await self.source_stats(user_id, session)
        except StoreUnavailable as exc:
            logger.error("Deduplication failed for user %d: %s", user_id, exc)
            return DeduplicationReport(
                success=False,
                duration_ms=_elapsed_ms(started),
                error=str(exc),
            )

        report = DeduplicationReport(
            success=True,
            duration_ms=_elapsed_ms(started),
            initial_stats=initial,
            final_stats=final,
            result=result,
        )
        logger.info(
            "Deduplication complete for user %d: removed=%d remaining=%d (%dms)",
            user_id,
            result.removed,
            result.remaining,
            report.duration_ms,
        )
        return report


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
