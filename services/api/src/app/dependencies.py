"""Process-wide collaborators exposed as FastAPI dependencies."""

import functools
from typing import Annotated

from fastapi import Depends

from shared.config.timeline import TimelineSettings
from shared.db.session import DatabaseManager
from shared.timeline.importer import HistoryImporter
from shared.timeline.matcher import NearDuplicateMatcher
from shared.timeline.reconciler import PlayReconciler

db_manager = DatabaseManager.from_env()


def get_db_manager() -> DatabaseManager:
    return db_manager


@functools.lru_cache(maxsize=1)
def get_timeline_settings() -> TimelineSettings:
    return TimelineSettings()


def get_reconciler(
    settings: Annotated[TimelineSettings, Depends(get_timeline_settings)],
) -> PlayReconciler:
    return PlayReconciler(NearDuplicateMatcher(window_seconds=settings.DEDUP_WINDOW_SECONDS))


def get_importer(
    manager: Annotated[DatabaseManager, Depends(get_db_manager)],
    settings: Annotated[TimelineSettings, Depends(get_timeline_settings)],
) -> HistoryImporter:
    return HistoryImporter(manager, settings)
