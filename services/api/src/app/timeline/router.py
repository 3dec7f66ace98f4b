"""Timeline endpoints: history file uploads, deduplication runs and stats."""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants import UPLOAD_CHUNK_SIZE
from app.dependencies import db_manager, get_importer, get_reconciler
from app.settings import AppSettings, get_settings
from app.timeline.schemas import TrackingStats, UploadRecordResponse
from shared.db.models.user import User
from shared.db.operations import PlayRepository
from shared.timeline.exceptions import AllDuplicates, DuplicateUpload, InvalidFormat, StoreUnavailable
from shared.timeline.importer import HistoryImporter
from shared.timeline.models import DeduplicationReport, ImportResult, SourceStats
from shared.timeline.reconciler import PlayReconciler
from shared.timeline.timestamps import as_utc

router = APIRouter()

_repo = PlayRepository()

# Failed imports keep their structured body; only the status code varies.
_IMPORT_ERROR_STATUS = {
    DuplicateUpload.code: 409,
    AllDuplicates.code: 409,
    InvalidFormat.code: 400,
    StoreUnavailable.code: 503,
}


async def _ensure_user_exists(user_id: int, session: AsyncSession) -> None:
    if await session.get(User, user_id) is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")


async def _read_upload(file: UploadFile, max_mb: int) -> bytes:
    max_bytes = max_mb * 1024 * 1024
    chunks: list[bytes] = []
    total_size = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_SIZE)
        if not chunk:
            break
        total_size += len(chunk)
        if total_size > max_bytes:
            raise HTTPException(status_code=413, detail=f"File exceeds maximum size of {max_mb}MB")
        chunks.append(chunk)
    return b"".join(chunks)


# --- Imports ---


@router.post("/{user_id}/imports", response_model=ImportResult)
async def upload_history_file(
    user_id: int,
    file: UploadFile,
    session: Annotated[AsyncSession, Depends(db_manager.dependency)],
    settings: Annotated[AppSettings, Depends(get_settings)],
    importer: Annotated[HistoryImporter, Depends(get_importer)],
) -> JSONResponse:
    """Import one StreamingHistory*.json file for a user."""
    await _ensure_user_exists(user_id, session)
    if not file.filename:
        raise HTTPException(status_code=400, detail="Upload has no filename")

    raw = await _read_upload(file, settings.IMPORT_MAX_UPLOAD_MB)
    result = await importer.import_bytes(user_id, file.filename, raw)

    status_code = 200
    if not result.success:
        status_code = _IMPORT_ERROR_STATUS.get(result.error_code or "", 500)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


@router.get("/{user_id}/imports", response_model=list[UploadRecordResponse])
async def list_uploads(
    user_id: int,
    session: Annotated[AsyncSession, Depends(db_manager.dependency)],
    limit: int = Query(default=50, ge=1, le=200),
) -> list[UploadRecordResponse]:
    """Import history for a user, newest first."""
    await _ensure_user_exists(user_id, session)
    records = await _repo.list_uploads(user_id, session, limit=limit)
    return [UploadRecordResponse.from_record(r) for r in records]


# --- Deduplication ---


@router.post("/{user_id}/deduplication/run", response_model=DeduplicationReport)
async def run_deduplication(
    user_id: int,
    session: Annotated[AsyncSession, Depends(db_manager.dependency)],
    reconciler: Annotated[PlayReconciler, Depends(get_reconciler)],
) -> DeduplicationReport:
    """Remove stored imported plays that duplicate live plays."""
    await _ensure_user_exists(user_id, session)
    report = await reconciler.run_deduplication(user_id, session)
    if not report.success:
        raise HTTPException(status_code=503, detail=report.error)
    return report


@router.get("/{user_id}/deduplication/stats", response_model=SourceStats)
async def deduplication_stats(
    user_id: int,
    session: Annotated[AsyncSession, Depends(db_manager.dependency)],
    reconciler: Annotated[PlayReconciler, Depends(get_reconciler)],
) -> SourceStats:
    """Per-source play counts."""
    await _ensure_user_exists(user_id, session)
    try:
        return await reconciler.source_stats(user_id, session)
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc


@router.get("/{user_id}/stats", response_model=TrackingStats)
async def tracking_stats(
    user_id: int,
    session: Annotated[AsyncSession, Depends(db_manager.dependency)],
    reconciler: Annotated[PlayReconciler, Depends(get_reconciler)],
) -> TrackingStats:
    """Totals plus the most recent play time."""
    await _ensure_user_exists(user_id, session)
    try:
        counts = await reconciler.source_stats(user_id, session)
        latest = await _repo.latest_play(user_id, session)
    except StoreUnavailable as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return TrackingStats(
        total_plays=counts.total,
        live_plays=counts.live,
        imported_plays=counts.imported,
        last_play_at=as_utc(latest.played_at) if latest else None,
    )
