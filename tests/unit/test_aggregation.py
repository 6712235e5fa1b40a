from __future__ import annotations

from datetime import date

import pytest

from kakeibo.engine.aggregation import (
    DailyData,
    DaySeverity,
    RemainingStatus,
    classify_day,
    classify_remaining,
    daily_average_budget,
    daily_totals,
    days_in_month,
    merge_daily_data,
    month_remaining,
    month_remaining_with_planned,
    month_window,
    summarise_month,
    today_total,
    week_remaining,
    week_start,
    week_window,
    weekly_average_budget,
)


@pytest.mark.parametrize(
    ("year", "month", "expected"),
    [(2024, 2, 29), (2023, 2, 28), (2024, 4, 30), (2024, 12, 31), (1900, 2, 28), (2000, 2, 29)],
)
def test_days_in_month(year: int, month: int, expected: int) -> None:
    assert days_in_month(year, month) == expected


def test_month_window_is_inclusive() -> None:
    window = month_window(2024, 2)
    assert window.start == date(2024, 2, 1)
    assert window.end == date(2024, 2, 29)
    assert date(2024, 2, 29) in window
    assert date(2024, 3, 1) not in window
    assert len(window.days()) == 29


@pytest.mark.parametrize(
    ("today", "expected"),
    [
        (date(2024, 5, 13), date(2024, 5, 13)),  # Monday
        (date(2024, 5, 15), date(2024, 5, 13)),  # Wednesday
        (date(2024, 5, 19), date(2024, 5, 13)),  # Sunday
        (date(2024, 6, 2), date(2024, 5, 27)),  # week crosses the month boundary
    ],
)
def test_week_start_is_monday(today: date, expected: date) -> None:
    assert week_start(today) == expected
    assert week_window(today).end == today


def test_daily_totals_sums_per_day() -> None:
    entries = [
        (date(2024, 5, 1), 500),
        (date(2024, 5, 1), 300),
        (date(2024, 5, 3), 1200),
    ]
    assert daily_totals(entries) == {date(2024, 5, 1): 800, date(2024, 5, 3): 1200}
    assert daily_totals([]) == {}


def test_merge_daily_data_uses_union_of_dates() -> None:
    merged = merge_daily_data(
        {date(2024, 5, 1): 800},
        {date(2024, 5, 1): 100, date(2024, 5, 20): 5000},
    )
    assert list(merged) == [date(2024, 5, 1), date(2024, 5, 20)]
    assert merged[date(2024, 5, 1)] == DailyData(actual_amount=800, planned_amount=100)
    assert merged[date(2024, 5, 20)] == DailyData(actual_amount=0, planned_amount=5000)


def test_today_total_ignores_other_days() -> None:
    entries = [(date(2024, 5, 2), 400), (date(2024, 5, 3), 250), (date(2024, 5, 3), 50)]
    assert today_total(entries, date(2024, 5, 3)) == 300
    assert today_total(entries, date(2024, 5, 4)) == 0


def test_remaining_figures() -> None:
    remaining = month_remaining(50000, 32000)
    assert remaining == 18000
    assert month_remaining_with_planned(remaining, 20000) == -2000
    assert month_remaining(0, 1500) == -1500


def test_weekly_budget_is_prorated() -> None:
    assert daily_average_budget(31000, 31) == pytest.approx(1000.0)
    assert weekly_average_budget(31000, 31) == pytest.approx(7000.0)
    assert week_remaining(31000, 31, 2500) == pytest.approx(4500.0)
    assert week_remaining(30000, 30, 0) == pytest.approx(7000.0)


@pytest.mark.parametrize(
    ("total", "expected"),
    [
        (0, DaySeverity.EMPTY),
        (1, DaySeverity.OK),
        (1000, DaySeverity.OK),
        (1001, DaySeverity.WARN),
        (1500, DaySeverity.WARN),
        (1501, DaySeverity.OVER),
    ],
)
def test_classify_day_thresholds(total: int, expected: DaySeverity) -> None:
    assert classify_day(total, 30000, 30) is expected


def test_classify_day_without_budget() -> None:
    assert classify_day(0, 0, 30) is DaySeverity.EMPTY
    assert classify_day(1, 0, 30) is DaySeverity.OVER


@pytest.mark.parametrize(
    ("remaining", "expected"),
    [
        (-1, RemainingStatus.NEGATIVE),
        (0, RemainingStatus.LOW),
        (9999, RemainingStatus.LOW),
        (10000, RemainingStatus.HEALTHY),
    ],
)
def test_classify_remaining(remaining: int, expected: RemainingStatus) -> None:
    assert classify_remaining(remaining) is expected


def test_summarise_month_combines_sources() -> None:
    summary = summarise_month(
        2024,
        5,
        today=date(2024, 5, 15),
        monthly_budget=31000,
        actual_entries=[
            (date(2024, 5, 2), 900),
            (date(2024, 5, 13), 1200),
            (date(2024, 5, 15), 2000),
        ],
        planned_entries=[(date(2024, 5, 25), 15000)],
        weekly_entries=[(date(2024, 5, 13), 1200), (date(2024, 5, 15), 2000)],
    )

    assert summary.monthly_total == 4100
    assert summary.monthly_planned_total == 15000
    assert summary.weekly_total == 3200
    assert summary.today_total == 2000
    assert summary.month_remaining == 26900
    assert summary.month_remaining_with_planned == 11900
    assert summary.weekly_remaining == pytest.approx(3800.0)
    assert summary.month_status is RemainingStatus.HEALTHY
    assert summary.month_with_planned_status is RemainingStatus.HEALTHY
    assert summary.day_severity[date(2024, 5, 2)] is DaySeverity.OK
    assert summary.day_severity[date(2024, 5, 13)] is DaySeverity.WARN
    assert summary.day_severity[date(2024, 5, 15)] is DaySeverity.OVER
    assert summary.day_severity[date(2024, 5, 1)] is DaySeverity.EMPTY
    assert len(summary.day_severity) == 31
    assert summary.daily_data[date(2024, 5, 25)].planned_amount == 15000


def test_summarise_month_without_budget_or_rows() -> None:
    summary = summarise_month(
        2024,
        2,
        today=date(2024, 2, 10),
        monthly_budget=0,
        actual_entries=[],
        planned_entries=[],
        weekly_entries=[],
    )
    assert summary.month_remaining == 0
    assert summary.weekly_remaining == 0.0
    assert summary.month_status is RemainingStatus.LOW
    assert summary.daily_data == {}
    assert set(summary.day_severity.values()) == {DaySeverity.EMPTY}
