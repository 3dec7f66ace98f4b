"""Tests for export timestamp normalization."""

import os
import time
from collections.abc import Generator
from datetime import UTC, datetime, timedelta, timezone

import pytest

from shared.timeline.exceptions import InvalidTimestamp
from shared.timeline.timestamps import as_utc, to_absolute_time, to_iso


def test_parses_export_end_time_as_utc() -> None:
    parsed = to_absolute_time("2023-12-27 10:30")
    assert parsed == datetime(2023, 12, 27, 10, 30, 0, tzinfo=UTC)
    assert parsed.second == 0
    assert parsed.utcoffset() == timedelta(0)


@pytest.mark.parametrize(
    "raw",
    [
        "",
        "not a date",
        "2023-13-01 10:30",
        "2023-02-30 10:30",
        "2023-12-27 25:00",
        "2023-12-27T10:30:00Z",
        "2023-1-5 1:2",
        "2023-12-27  10:30",
        " 2023-12-27 10:30",
        "2023-12-27 10:30:15",
        None,
        1703673000,
    ],
)
def test_rejects_malformed_timestamps(raw: object) -> None:
    with pytest.raises(InvalidTimestamp) as exc_info:
        to_absolute_time(raw)
    assert exc_info.value.raw == raw


@pytest.fixture
def non_utc_local_zone() -> Generator[None]:
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset is not available on this platform")
    previous = os.environ.get("TZ")
    os.environ["TZ"] = "America/New_York"
    time.tzset()
    yield
    if previous is None:
        del os.environ["TZ"]
    else:
        os.environ["TZ"] = previous
    time.tzset()


@pytest.mark.usefixtures("non_utc_local_zone")
def test_parsing_ignores_the_local_zone() -> None:
    parsed = to_absolute_time("2023-07-01 23:30")
    assert parsed == datetime(2023, 7, 1, 23, 30, tzinfo=UTC)
    assert parsed.timestamp() == 1688254200


def test_as_utc_attaches_zone_to_naive_values() -> None:
    assert as_utc(datetime(2024, 1, 1, 12, 0)) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def test_as_utc_converts_offsets() -> None:
    plus_two = timezone(timedelta(hours=2))
    assert as_utc(datetime(2024, 1, 1, 14, 0, tzinfo=plus_two)) == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


def test_to_iso_uses_z_suffix() -> None:
    assert to_iso(datetime(2023, 12, 27, 10, 30, tzinfo=UTC)) == "2023-12-27T10:30:00Z"
