"""Store primitives for the listening timeline: find, insert-or-ignore, delete, exists."""

import functools
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import Any, ParamSpec, TypeVar

from sqlalchemy import Insert, delete, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shared.db.enums import PlaySource
from shared.db.models.music import Play
from shared.db.models.operations import UploadRecord
from shared.timeline.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

# Conflict key shared by live sync and imports
PLAY_CONFLICT_KEYS = ("user_id", "track_id", "played_at")

P = ParamSpec("P")
R = TypeVar("R")


def store_operation(name: str) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Re-raise SQLAlchemy failures from a repository method as StoreUnavailable."""

    def decorator(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await fn(*args, **kwargs)
            except SQLAlchemyError as exc:
                raise StoreUnavailable(name, str(exc)[:200]) from exc

        return wrapper

    return decorator


def _insert_for(session: AsyncSession) -> Callable[[Any], Insert]:
    """Pick the dialect-specific INSERT that supports ON CONFLICT DO NOTHING."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert
    if dialect == "sqlite":
        return sqlite.insert
    raise StoreUnavailable("insert_or_ignore", f"unsupported dialect {dialect!r}")


class PlayRepository:
    """Queries and mutations over plays and upload records.

    Every method takes the session explicitly; transaction boundaries belong
    to the caller.
    """

    # -------------------------------------------------------------------
    # Plays
    # -------------------------------------------------------------------

    @store_operation("find_plays")
    async def find_plays(
        self,
        user_id: int,
        session: AsyncSession,
        *,
        source: PlaySource | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        ascending: bool = True,
        limit: int | None = None,
    ) -> list[Play]:
        """Plays for a user, optionally narrowed to a source and an inclusive time range."""
        query = select(Play).where(Play.user_id == user_id)
        if source is not None:
            query = query.where(Play.source == source)
        if start is not None:
            query = query.where(Play.played_at >= start)
        if end is not None:
            query = query.where(Play.played_at <= end)
        order = Play.played_at.asc() if ascending else Play.played_at.desc()
        query = query.order_by(order, Play.id.asc())
        if limit is not None:
            query = query.limit(limit)
        result = await session.execute(query)
        return list(result.scalars().all())

    @store_operation("live_play_exists")
    async def live_play_exists(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
        session: AsyncSession,
    ) -> bool:
        """True if the user has a live play with ``start <= played_at <= end``."""
        result = await session.execute(
            select(Play.id)
            .where(
                Play.user_id == user_id,
                Play.source == PlaySource.LIVE,
                Play.played_at >= start,
                Play.played_at <= end,
            )
            .limit(1)
        )
        return result.first() is not None

    @store_operation("insert_or_ignore")
    async def insert_or_ignore_plays(
        self,
        rows: Sequence[dict[str, Any]],
        session: AsyncSession,
    ) -> int:
        """Insert rows, skipping any that collide on (user_id, track_id, played_at).

        Returns the number of rows actually written, counted from RETURNING.
        """
        if not rows:
            return 0
        insert = _insert_for(session)
        stmt = (
            insert(Play)
            .values(list(rows))
            .on_conflict_do_nothing(index_elements=list(PLAY_CONFLICT_KEYS))
            .returning(Play.id)
        )
        result = await session.execute(stmt)
        return len(result.all())

    @store_operation("delete_by_ids")
    async def delete_imported_plays(self, ids: Sequence[int], session: AsyncSession) -> int:
        """Delete imported plays by store id in one statement. Live rows are never touched."""
        if not ids:
            return 0
        result = await session.execute(
            delete(Play).where(Play.id.in_(list(ids)), Play.source == PlaySource.IMPORTED)
        )
        return result.rowcount or 0

    @store_operation("count_by_source")
    async def count_by_source(self, user_id: int, session: AsyncSession) -> dict[PlaySource, int]:
        result = await session.execute(
            select(Play.source, func.count(Play.id)).where(Play.user_id == user_id).group_by(Play.source)
        )
        counts = {source: 0 for source in PlaySource}
        for source, count in result.all():
            counts[PlaySource(source)] = count
        return counts

    @store_operation("latest_play")
    async def latest_play(self, user_id: int, session: AsyncSession) -> Play | None:
        plays = await self.find_plays(user_id, session, ascending=False, limit=1)
        return plays[0] if plays else None

    # -------------------------------------------------------------------
    # Upload provenance
    # -------------------------------------------------------------------

    @store_operation("upload_exists")
    async def upload_exists(self, user_id: int, content_hash: str, session: AsyncSession) -> bool:
        result = await session.execute(
            select(UploadRecord.id)
            .where(UploadRecord.user_id == user_id, UploadRecord.content_hash == content_hash)
            .limit(1)
        )
        return result.first() is not None

    @store_operation("record_upload")
    async def add_upload(self, record: UploadRecord, session: AsyncSession) -> UploadRecord:
        session.add(record)
        await session.flush()
        return record

    @store_operation("list_uploads")
    async def list_uploads(self, user_id: int, session: AsyncSession, *, limit: int = 50) -> list[UploadRecord]:
        result = await session.execute(
            select(UploadRecord)
            .where(UploadRecord.user_id == user_id)
            .order_by(UploadRecord.uploaded_at.desc(), UploadRecord.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
