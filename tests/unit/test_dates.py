from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, timezone

import pytest

from kakeibo.engine.dates import TARGET_UTC_OFFSET, format_date, parse_date, today


def test_target_offset_is_nine_hours() -> None:
    assert TARGET_UTC_OFFSET == timedelta(hours=9)


@pytest.mark.parametrize(
    ("instant", "expected"),
    [
        (datetime(2024, 5, 3, 14, 59, tzinfo=UTC), date(2024, 5, 3)),
        (datetime(2024, 5, 3, 15, 0, tzinfo=UTC), date(2024, 5, 4)),
        (datetime(2024, 12, 31, 15, 30, tzinfo=UTC), date(2025, 1, 1)),
        (datetime(2024, 2, 28, 16, 0, tzinfo=UTC), date(2024, 2, 29)),
    ],
)
def test_format_date_shifts_to_target_zone(instant: datetime, expected: date) -> None:
    assert format_date(instant) == expected


def test_format_date_normalises_aware_instants() -> None:
    # 08:30 in UTC-5 is 13:30 UTC, i.e. 22:30 in UTC+9.
    eastern = timezone(timedelta(hours=-5))
    assert format_date(datetime(2024, 5, 3, 8, 30, tzinfo=eastern)) == date(2024, 5, 3)
    assert format_date(datetime(2024, 5, 3, 10, 0, tzinfo=eastern)) == date(2024, 5, 4)


def test_format_date_reads_naive_values_as_utc() -> None:
    assert format_date(datetime(2024, 5, 3, 20, 0)) == date(2024, 5, 4)


def test_today_uses_injected_clock() -> None:
    now = datetime(2024, 3, 31, 23, 0, tzinfo=UTC)
    assert today(now) == date(2024, 4, 1)
    assert today(now, offset=timedelta(0)) == date(2024, 3, 31)


def test_today_without_clock_matches_utc_shift() -> None:
    before = (datetime.now(tz=UTC) + TARGET_UTC_OFFSET).date()
    result = today()
    after = (datetime.now(tz=UTC) + TARGET_UTC_OFFSET).date()
    assert before <= result <= after


def test_parse_date_roundtrip() -> None:
    assert parse_date(" 2024-02-29 ") == date(2024, 2, 29)
    with pytest.raises(ValueError):
        parse_date("2023-02-29")
    with pytest.raises(ValueError):
        parse_date("29/02/2024")
