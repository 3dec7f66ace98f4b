"""Tests for HistoryImporter."""

import json
import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from shared.config.timeline import TimelineSettings
from shared.db.enums import PlaySource, UploadStatus
from shared.db.models.music import Play
from shared.db.models.operations import UploadRecord
from shared.db.models.user import User
from shared.db.operations import PlayRepository
from shared.db.session import DatabaseManager
from shared.timeline.exceptions import StoreUnavailable
from shared.timeline.identity import track_identity
from shared.timeline.importer import HistoryImporter

FILENAME = "StreamingHistory0.json"


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def db_manager(session_factory: async_sessionmaker[AsyncSession]) -> AsyncMock:
    """A DatabaseManager stand-in that yields transactional sessions from the test engine."""
    manager = AsyncMock(spec=DatabaseManager)

    @asynccontextmanager
    async def _mock_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as s:
            try:
                yield s
                await s.commit()
            except Exception:
                await s.rollback()
                raise

    manager.session = _mock_session
    return manager


@pytest.fixture
async def user_id(session_factory: async_sessionmaker[AsyncSession]) -> int:
    async with session_factory() as session:
        user = User(spotify_user_id="testuser", display_name="Test User")
        session.add(user)
        await session.commit()
        return user.id


async def _add_live_play(session_factory: async_sessionmaker[AsyncSession], user_id: int, played_at: datetime) -> None:
    async with session_factory() as session:
        session.add(
            Play(
                user_id=user_id,
                track_id="live-track",
                track_name="Live Song",
                artist_name="Live Artist",
                duration_ms=200000,
                played_at=played_at,
                source=PlaySource.LIVE,
            )
        )
        await session.commit()


async def _count(session_factory: async_sessionmaker[AsyncSession], model: type[Any]) -> int:
    async with session_factory() as session:
        result = await session.execute(select(func.count()).select_from(model))
        return result.scalar_one()


def _record(end_time: str, track: str = "Song", artist: str = "Artist", ms: object = 180000) -> dict[str, object]:
    return {"endTime": end_time, "artistName": artist, "trackName": track, "msPlayed": ms}


def _encode(records: object) -> bytes:
    return json.dumps(records).encode()


class FlakyRepository(PlayRepository):
    """Fails the insert batches whose (0-based) index is listed."""

    def __init__(self, failing_batches: set[int]) -> None:
        self._failing = failing_batches
        self._calls = 0

    async def insert_or_ignore_plays(self, rows: Sequence[dict[str, Any]], session: AsyncSession) -> int:
        call = self._calls
        self._calls += 1
        if call in self._failing:
            raise StoreUnavailable("insert_or_ignore", "connection reset")
        return await super().insert_or_ignore_plays(rows, session)


class TestImportScenarios:
    async def test_skipped_plays_are_dropped_and_rest_inserted(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        """Three records, one with msPlayed 0, yield two inserted imported plays."""
        records = [
            _record("2023-12-27 10:30", "Song A"),
            _record("2023-12-27 10:35", "Song B", ms=0),
            _record("2023-12-27 10:40", "Song C"),
        ]
        result = await HistoryImporter(db_manager).import_bytes(user_id, FILENAME, _encode(records))

        assert result.success is True
        assert result.total_plays == 2
        assert result.inserted_plays == 2
        assert result.duplicates == 0
        assert result.errors == []

        async with session_factory() as session:
            plays = (await session.execute(select(Play).order_by(Play.played_at))).scalars().all()
        assert [p.track_name for p in plays] == ["Song A", "Song C"]
        assert all(p.source == PlaySource.IMPORTED for p in plays)
        assert plays[0].track_id == track_identity("Song A", "Artist")

        async with session_factory() as session:
            upload = (await session.execute(select(UploadRecord))).scalar_one()
        assert upload.status == UploadStatus.COMPLETED
        assert upload.inserted_plays == 2
        assert upload.filename == FILENAME

    async def test_identical_content_is_rejected_without_mutations(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        raw = _encode([_record("2023-12-27 10:30")])
        importer = HistoryImporter(db_manager)
        assert (await importer.import_bytes(user_id, FILENAME, raw)).success is True
        plays_before = await _count(session_factory, Play)
        uploads_before = await _count(session_factory, UploadRecord)

        result = await importer.import_bytes(user_id, "StreamingHistory1.json", raw)

        assert result.success is False
        assert result.error_code == "DuplicateUpload"
        assert await _count(session_factory, Play) == plays_before
        assert await _count(session_factory, UploadRecord) == uploads_before

    async def test_same_content_for_another_user_is_accepted(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        async with session_factory() as session:
            other = User(spotify_user_id="other")
            session.add(other)
            await session.commit()
            other_id = other.id

        raw = _encode([_record("2023-12-27 10:30")])
        importer = HistoryImporter(db_manager)
        assert (await importer.import_bytes(user_id, FILENAME, raw)).success is True
        assert (await importer.import_bytes(other_id, FILENAME, raw)).success is True

    async def test_near_live_candidates_are_counted_as_duplicates(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        await _add_live_play(session_factory, user_id, datetime(2023, 12, 27, 10, 30, 3, tzinfo=UTC))
        records = [
            _record("2023-12-27 10:30", "Dup"),
            _record("2023-12-27 11:30", "Keep 1"),
            _record("2023-12-27 12:30", "Keep 2"),
        ]
        result = await HistoryImporter(db_manager).import_bytes(user_id, FILENAME, _encode(records))

        assert result.success is True
        assert result.total_plays == 3
        assert result.duplicates == 1
        assert result.inserted_plays == 2

    async def test_all_duplicates_inserts_nothing(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        await _add_live_play(session_factory, user_id, datetime(2023, 12, 27, 10, 30, 2, tzinfo=UTC))
        records = [_record("2023-12-27 10:30", "A"), _record("2023-12-27 10:30", "B")]

        result = await HistoryImporter(db_manager).import_bytes(user_id, FILENAME, _encode(records))

        assert result.success is False
        assert result.error_code == "AllDuplicates"
        assert result.duplicates == 2
        assert result.inserted_plays == 0
        assert await _count(session_factory, Play) == 1
        assert await _count(session_factory, UploadRecord) == 0

    async def test_overlapping_files_report_already_present(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        """Rows the conflict key ignores are not reported as inserted."""
        importer = HistoryImporter(db_manager)
        await importer.import_bytes(user_id, FILENAME, _encode([_record("2023-12-27 10:30")]))

        result = await importer.import_bytes(
            user_id,
            "StreamingHistory1.json",
            _encode([_record("2023-12-27 10:30"), _record("2023-12-27 10:45", "New")]),
        )

        assert result.success is True
        assert result.inserted_plays == 1
        assert result.already_present == 1
        assert await _count(session_factory, Play) == 2

    async def test_nameless_records_still_hit_the_conflict_key(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        importer = HistoryImporter(db_manager)
        await importer.import_bytes(user_id, FILENAME, _encode([_record("2023-12-27 10:30", "Song", "")]))

        result = await importer.import_bytes(
            user_id,
            "StreamingHistory1.json",
            _encode([_record("2023-12-27 10:30", "Song", ""), _record("2023-12-27 10:45", "Other")]),
        )

        assert result.inserted_plays == 1
        assert result.already_present == 1
        assert await _count(session_factory, Play) == 2

    async def test_import_file_accepts_parsed_records(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        records = [_record("2023-12-27 10:30")]
        importer = HistoryImporter(db_manager)

        assert (await importer.import_file(user_id, FILENAME, records)).inserted_plays == 1
        assert (await importer.import_file(user_id, FILENAME, records)).error_code == "DuplicateUpload"


class TestValidation:
    @pytest.mark.parametrize(
        ("filename", "payload", "message"),
        [
            ("endsong_0.json", [_record("2023-12-27 10:30")], "Invalid filename"),
            ("StreamingHistory0.txt", [_record("2023-12-27 10:30")], "Invalid filename"),
            (FILENAME, {"endTime": "2023-12-27 10:30"}, "Expected JSON array"),
            (FILENAME, [], "File is empty"),
            (FILENAME, ["not an object"], "array of objects"),
            (FILENAME, [{"endTime": "2023-12-27 10:30", "trackName": "A", "msPlayed": 1}], "artistName"),
        ],
    )
    async def test_whole_file_rejections(
        self,
        db_manager: AsyncMock,
        session_factory: async_sessionmaker[AsyncSession],
        user_id: int,
        filename: str,
        payload: object,
        message: str,
    ) -> None:
        result = await HistoryImporter(db_manager).import_bytes(user_id, filename, _encode(payload))

        assert result.success is False
        assert result.error_code == "InvalidFormat"
        assert result.error is not None
        assert message in result.error
        assert await _count(session_factory, Play) == 0
        assert await _count(session_factory, UploadRecord) == 0

    async def test_invalid_json(self, db_manager: AsyncMock, user_id: int) -> None:
        result = await HistoryImporter(db_manager).import_bytes(user_id, FILENAME, b"[{not json")
        assert result.error_code == "InvalidFormat"
        assert result.error is not None
        assert "Invalid JSON" in result.error

    def test_filename_check_uses_basename_case_insensitively(self, db_manager: AsyncMock) -> None:
        importer = HistoryImporter(db_manager)
        records = [_record("2023-12-27 10:30")]
        assert importer.validate_file("exports/my_spotify_data/streaminghistory_music_0.JSON", records) == records

    async def test_custom_prefix(self, db_manager: AsyncMock, user_id: int) -> None:
        importer = HistoryImporter(db_manager, TimelineSettings(IMPORT_FILENAME_PREFIX="Listening"))
        result = await importer.import_bytes(user_id, "Listening1.json", _encode([_record("2023-12-27 10:30")]))
        assert result.success is True


class TestTransform:
    def test_bad_timestamps_are_reported_per_record(self, db_manager: AsyncMock) -> None:
        records = [
            _record("2023-12-27 10:30"),
            _record("yesterday"),
            _record("2023-12-27 10:40", ms="90000"),
        ]
        candidates, errors = HistoryImporter(db_manager).transform(1, records)

        assert [c.duration_ms for c in candidates] == [180000, 90000]
        assert len(errors) == 1
        assert "index 1" in errors[0]

    def test_missing_names_use_placeholders(self, db_manager: AsyncMock) -> None:
        candidates, errors = HistoryImporter(db_manager).transform(1, [_record("2023-12-27 10:30", "", "  ")])

        assert errors == []
        assert candidates[0].track_name == "Unknown Track"
        assert candidates[0].artist_name == "Unknown Artist"
        assert candidates[0].track_id == track_identity("Unknown Track", "Unknown Artist")

    @pytest.mark.parametrize("ms", [0, -5, None, "abc", True])
    def test_unusable_durations_are_skipped(self, db_manager: AsyncMock, ms: object) -> None:
        candidates, errors = HistoryImporter(db_manager).transform(1, [_record("2023-12-27 10:30", ms=ms)])
        assert candidates == []
        assert errors == []

    async def test_no_valid_plays(self, db_manager: AsyncMock, user_id: int) -> None:
        records = [_record("bad"), _record("2023-12-27 10:30", ms=0)]
        result = await HistoryImporter(db_manager).import_bytes(user_id, FILENAME, _encode(records))

        assert result.success is False
        assert result.error_code == "InvalidFormat"
        assert result.parse_errors == 1
        assert result.error == "No valid plays found in file."


class TestPersistence:
    async def test_failed_batch_does_not_roll_back_others(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        records = [_record(f"2023-12-27 10:{minute:02d}", f"Song {minute}") for minute in range(5)]
        importer = HistoryImporter(
            db_manager,
            TimelineSettings(IMPORT_BATCH_SIZE=2),
            repository=FlakyRepository(failing_batches={1}),
        )

        result = await importer.import_bytes(user_id, FILENAME, _encode(records))

        assert result.success is True
        assert result.inserted_plays == 3
        assert result.insert_errors == 1
        assert any("Batch 2-4" in e for e in result.errors)
        assert await _count(session_factory, Play) == 3

        async with session_factory() as session:
            upload = (await session.execute(select(UploadRecord))).scalar_one()
        assert upload.status == UploadStatus.PARTIAL
        assert upload.insert_errors == 1

    async def test_every_batch_failing_is_store_unavailable(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        records = [_record(f"2023-12-27 10:{minute:02d}", f"Song {minute}") for minute in range(3)]
        importer = HistoryImporter(
            db_manager,
            TimelineSettings(IMPORT_BATCH_SIZE=2),
            repository=FlakyRepository(failing_batches={0, 1}),
        )

        result = await importer.import_bytes(user_id, FILENAME, _encode(records))

        assert result.success is False
        assert result.error_code == "StoreUnavailable"
        assert result.insert_errors == 2
        assert await _count(session_factory, UploadRecord) == 0

    async def test_provenance_failure_is_logged_not_raised(
        self,
        db_manager: AsyncMock,
        session_factory: async_sessionmaker[AsyncSession],
        user_id: int,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        importer = HistoryImporter(db_manager)
        with (
            patch.object(
                importer._repo, "add_upload", new_callable=AsyncMock, side_effect=StoreUnavailable("record_upload")
            ),
            caplog.at_level(logging.ERROR, logger="shared.timeline.importer"),
        ):
            result = await importer.import_bytes(user_id, FILENAME, _encode([_record("2023-12-27 10:30")]))

        assert result.success is True
        assert result.inserted_plays == 1
        assert "Failed to record upload" in caplog.text

    async def test_duplicate_check_failure_fails_open(
        self, db_manager: AsyncMock, session_factory: async_sessionmaker[AsyncSession], user_id: int
    ) -> None:
        importer = HistoryImporter(db_manager)
        with patch.object(
            importer._repo, "upload_exists", new_callable=AsyncMock, side_effect=StoreUnavailable("upload_exists")
        ):
            result = await importer.import_bytes(user_id, FILENAME, _encode([_record("2023-12-27 10:30")]))

        assert result.success is True
        assert await _count(session_factory, Play) == 1
