"""History file import pipeline: validate, transform, dedup, persist, record provenance."""

import json
import logging
import time
from collections.abc import Callable, Sequence
from pathlib import PurePosixPath

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from shared.config.timeline import TimelineSettings
from shared.db.enums import PlaySource, UploadStatus
from shared.db.models.operations import UploadRecord
from shared.db.operations import PlayRepository
from shared.db.session import DatabaseManager
from shared.timeline.constants import (
    REQUIRED_EXPORT_FIELDS,
    UNKNOWN_ARTIST_NAME,
    UNKNOWN_TRACK_NAME,
    export_filename_pattern,
)
from shared.timeline.exceptions import (
    AllDuplicates,
    DuplicateUpload,
    InvalidFormat,
    InvalidTimestamp,
    StoreUnavailable,
    TimelineError,
)
from shared.timeline.identity import content_fingerprint, track_identity
from shared.timeline.matcher import NearDuplicateMatcher
from shared.timeline.models import ImportResult, PlayCandidate
from shared.timeline.reconciler import PlayReconciler
from shared.timeline.timestamps import to_absolute_time

logger = logging.getLogger(__name__)


class _ImportTally:
    """Running counts for one import call."""

    def __init__(self) -> None:
        self.total = 0
        self.inserted = 0
        self.duplicates = 0
        self.already_present = 0
        self.errors: list[str] = []
        self.parse_errors = 0
        self.insert_errors = 0


class HistoryImporter:
    """Imports ``StreamingHistory*.json`` account-data exports for a user.

    One call is a single linear pass with no internal retries:

    1. reject content already uploaded by the same user (by fingerprint)
    2. validate filename and record shape
    3. transform records into imported play candidates
    4. drop candidates that shadow a live play
    5. insert survivors in independent insert-or-ignore batches
    6. write one upload provenance record
    """

    def __init__(
        self,
        db_manager: DatabaseManager,
        settings: TimelineSettings | None = None,
        *,
        repository: PlayRepository | None = None,
        reconciler: PlayReconciler | None = None,
    ) -> None:
        self._db = db_manager
        self._settings = settings or TimelineSettings()
        self._repo = repository or PlayRepository()
        self._reconciler = reconciler or PlayReconciler(
            NearDuplicateMatcher(self._repo, window_seconds=self._settings.DEDUP_WINDOW_SECONDS),
            self._repo,
        )
        self._filename_pattern = export_filename_pattern(self._settings.IMPORT_FILENAME_PREFIX)

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------

    async def import_bytes(self, user_id: int, filename: str, raw: bytes) -> ImportResult:
        """Import an uploaded file from its raw bytes.

        The fingerprint covers the bytes exactly as uploaded.
        """
        return await self._import(user_id, filename, raw, lambda: _decode_json(raw))

    async def import_file(self, user_id: int, filename: str, records: object) -> ImportResult:
        """Import already-parsed file content.

        The fingerprint covers the compact JSON encoding of ``records``.
        """
        raw = json.dumps(records, ensure_ascii=False, separators=(",", ":"), default=str).encode()
        return await self._import(user_id, filename, raw, lambda: records)

    # -------------------------------------------------------------------
    # Pipeline stages
    # -------------------------------------------------------------------

    def validate_file(self, filename: str, records: object) -> list[dict[str, object]]:
        """Check filename and record shape. Raises InvalidFormat."""
        name = PurePosixPath(filename.replace("\\", "/")).name
        if not self._filename_pattern.fullmatch(name):
            raise InvalidFormat(f"Invalid filename. Must be {self._settings.IMPORT_FILENAME_PREFIX}*.json")

        if not isinstance(records, list):
            raise InvalidFormat("Invalid file format. Expected JSON array.")
        if not records:
            raise InvalidFormat("File is empty.")

        first = records[0]
        if not isinstance(first, dict):
            raise InvalidFormat("Invalid file format. Expected an array of objects.")
        for field in REQUIRED_EXPORT_FIELDS:
            if field not in first:
                raise InvalidFormat(f"Missing required field: {field}")
        return records

    def transform(self, user_id: int, records: Sequence[object]) -> tuple[list[PlayCandidate], list[str]]:
        """Map raw export records to imported play candidates.

        Records with a bad timestamp are reported in the returned error list;
        records with zero duration are skipped plays and dropped silently.
        """
        candidates: list[PlayCandidate] = []
        errors: list[str] = []

        for index, raw in enumerate(records):
            if not isinstance(raw, dict):
                errors.append(f"Invalid record at index {index}: expected an object")
                continue

            try:
                played_at = to_absolute_time(raw.get("endTime"))
            except InvalidTimestamp as exc:
                errors.append(f"Invalid endTime at index {index}: {exc.raw!r}")
                continue

            duration_ms = _coerce_ms(raw.get("msPlayed"))
            if duration_ms == 0:
                continue

            # Placeholders feed the identity too, so the conflict key is never NULL
            track_name = _text(raw.get("trackName")) or UNKNOWN_TRACK_NAME
            artist_name = _text(raw.get("artistName")) or UNKNOWN_ARTIST_NAME
            try:
                candidates.append(
                    PlayCandidate(
                        user_id=user_id,
                        track_id=track_identity(track_name, artist_name),
                        track_name=track_name,
                        artist_name=artist_name,
                        album=None,
                        duration_ms=duration_ms,
                        played_at=played_at,
                        source=PlaySource.IMPORTED,
                    )
                )
            except ValidationError as exc:
                errors.append(f"Error processing record at index {index}: {exc.errors()[0]['msg']}")

        return candidates, errors

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------

    async def _import(
        self,
        user_id: int,
        filename: str,
        raw: bytes,
        load: Callable[[], object],
    ) -> ImportResult:
        started = time.monotonic()
        fingerprint = content_fingerprint(raw)
        tally = _ImportTally()

        try:
            await self._check_duplicate_upload(user_id, filename, fingerprint)
            records = self.validate_file(filename, load())

            candidates, parse_errors = self.transform(user_id, records)
            tally.total = len(candidates)
            tally.parse_errors = len(parse_errors)
            tally.errors.extend(parse_errors)
            if parse_errors:
                logger.warning("Import %s for user %d: %d parse errors", filename, user_id, len(parse_errors))
            if not candidates:
                raise InvalidFormat("No valid plays found in file.")

            async with self._db.session() as session:
                filtered = await self._reconciler.filter_against_live(candidates, session)
            tally.duplicates = filtered.removed_count
            if not filtered.kept:
                raise AllDuplicates(len(candidates))

            await self._persist(filtered.kept, tally)
            if tally.insert_errors and tally.inserted == 0 and tally.already_present == 0:
                raise StoreUnavailable("insert_or_ignore", "every batch failed")
        except TimelineError as exc:
            logger.warning("Import %s for user %d failed: %s", filename, user_id, exc)
            return self._result(filename, tally, started, error=exc)

        await self._record_upload(user_id, filename, fingerprint, tally)

        result = self._result(filename, tally, started)
        logger.info(
            "Imported %s for user %d: total=%d inserted=%d duplicates=%d already_present=%d (%dms)",
            filename,
            user_id,
            result.total_plays,
            result.inserted_plays,
            result.duplicates,
            result.already_present,
            result.duration_ms,
        )
        return result

    async def _check_duplicate_upload(self, user_id: int, filename: str, fingerprint: str) -> None:
        try:
            async with self._db.session() as session:
                exists = await self._repo.upload_exists(user_id, fingerprint, session)
        except (StoreUnavailable, SQLAlchemyError) as exc:
            logger.warning("Duplicate-upload check failed for %s, continuing: %s", filename, exc)
            return
        if exists:
            raise DuplicateUpload(filename)

    async def _persist(self, plays: list[PlayCandidate], tally: _ImportTally) -> None:
        batch_size = self._settings.IMPORT_BATCH_SIZE
        for offset in range(0, len(plays), batch_size):
            batch = plays[offset : offset + batch_size]
            try:
                async with self._db.session() as session:
                    written = await self._repo.insert_or_ignore_plays([p.to_row() for p in batch], session)
            except (StoreUnavailable, SQLAlchemyError) as exc:
                tally.insert_errors += 1
                tally.errors.append(f"Batch {offset}-{offset + len(batch)}: {exc}")
                logger.error("Insert batch %d-%d failed: %s", offset, offset + len(batch), exc)
                continue
            tally.inserted += written
            tally.already_present += len(batch) - written

    async def _record_upload(self, user_id: int, filename: str, fingerprint: str, tally: _ImportTally) -> None:
        record = UploadRecord(
            user_id=user_id,
            filename=filename,
            content_hash=fingerprint,
            status=UploadStatus.PARTIAL if tally.insert_errors else UploadStatus.COMPLETED,
            total_plays=tally.total,
            inserted_plays=tally.inserted,
            duplicates_removed=tally.duplicates,
            parse_errors=tally.parse_errors,
            insert_errors=tally.insert_errors,
            error_message="\n".join(tally.errors)[:1000] or None,
        )
        try:
            async with self._db.session() as session:
                await self._repo.add_upload(record, session)
        except (StoreUnavailable, SQLAlchemyError):
            logger.exception("Failed to record upload %s for user %d", filename, user_id)

    @staticmethod
    def _result(
        filename: str,
        tally: _ImportTally,
        started: float,
        error: TimelineError | None = None,
    ) -> ImportResult:
        return ImportResult(
            success=error is None,
            filename=filename,
            total_plays=tally.total,
            inserted_plays=tally.inserted,
            duplicates=tally.duplicates,
            already_present=tally.already_present,
            parse_errors=tally.parse_errors,
            insert_errors=tally.insert_errors,
            errors=tally.errors,
            duration_ms=int((time.monotonic() - started) * 1000),
            error=str(error) if error else None,
            error_code=error.code if error else None,
        )


def _decode_json(raw: bytes) -> object:
    try:
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise InvalidFormat(f"Invalid JSON: {exc}") from exc


def _text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _coerce_ms(value: object) -> int:
    """Milliseconds played as a non-negative int; anything unusable is 0."""
    if isinstance(value, bool):
        return 0
    try:
        if isinstance(value, int):
            ms = value
        elif isinstance(value, float):
            ms = int(value)
        elif isinstance(value, str):
            ms = int(value.strip())
        else:
            return 0
    except (ValueError, OverflowError):
        return 0
    return max(ms, 0)
