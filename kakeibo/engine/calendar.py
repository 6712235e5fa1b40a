"""Month grid layout for the history calendar."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date

from kakeibo.engine.aggregation import (
    DailyData,
    DaySeverity,
    classify_day,
    days_in_month,
)

__all__ = ["CalendarCell", "calendar_grid", "leading_blank_days", "shift_month"]


@dataclass(frozen=True)
class CalendarCell:
    """One cell of a Sunday-first month grid.

    Blank cells (padding before the 1st) carry ``date=None`` and zero amounts.
    """

    date: date | None
    day: int | None
    actual_amount: int = 0
    planned_amount: int = 0
    severity: DaySeverity = DaySeverity.EMPTY
    is_today: bool = False


def leading_blank_days(year: int, month: int) -> int:
    """Number of blank cells before the 1st in a Sunday-first week row."""

    # weekday(): Monday=0..Sunday=6; shift so Sunday=0..Saturday=6.
    return (date(year, month, 1).weekday() + 1) % 7


def calendar_grid(
    year: int,
    month: int,
    daily_data: Mapping[date, DailyData],
    monthly_budget: int,
    today: date | None = None,
) -> list[CalendarCell]:
    """Lay out the month as grid cells with per-day amounts and severity."""

    cells = [CalendarCell(date=None, day=None) for _ in range(leading_blank_days(year, month))]
    days = days_in_month(year, month)
    for day_number in range(1, days + 1):
        current = date(year, month, day_number)
        data = daily_data.get(current, DailyData())
        cells.append(
            CalendarCell(
                date=current,
                day=day_number,
                actual_amount=data.actual_amount,
                planned_amount=data.planned_amount,
                severity=classify_day(data.actual_amount, monthly_budget, days),
                is_today=current == today,
            )
        )
    return cells


def shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    """Move ``delta`` months forwards (or backwards) with year wrap-around."""

    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1
