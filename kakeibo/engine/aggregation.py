"""Budget arithmetic and daily aggregation for the monthly ledger.

All helpers are pure functions of their inputs: rows are expected to be
already restricted to the correct user and date window by the caller.
Amounts are whole yen (``int``); prorated figures are ``float``.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Final

__all__ = [
    "DAILY_WARN_RATIO",
    "LOW_REMAINING_THRESHOLD",
    "DailyData",
    "DateWindow",
    "DaySeverity",
    "MonthSummary",
    "RemainingStatus",
    "classify_day",
    "classify_remaining",
    "daily_average_budget",
    "daily_totals",
    "days_in_month",
    "merge_daily_data",
    "month_remaining",
    "month_remaining_with_planned",
    "month_window",
    "summarise_month",
    "today_total",
    "total_amount",
    "week_remaining",
    "week_start",
    "week_window",
    "weekly_average_budget",
]

DAILY_WARN_RATIO: Final[float] = 1.5
LOW_REMAINING_THRESHOLD: Final[int] = 10_000
DAYS_PER_WEEK: Final[int] = 7

DatedAmount = tuple[date, int]


class DaySeverity(str, Enum):
    """Colour class of a calendar day relative to the daily budget."""

    EMPTY = "empty"
    OK = "ok"
    WARN = "warn"
    OVER = "over"


class RemainingStatus(str, Enum):
    """Status of a remaining-budget figure on the home screen."""

    NEGATIVE = "negative"
    LOW = "low"
    HEALTHY = "healthy"


@dataclass(frozen=True)
class DateWindow:
    """Inclusive ``[start, end]`` range of calendar dates."""

    start: date
    end: date

    def __contains__(self, day: object) -> bool:
        return isinstance(day, date) and self.start <= day <= self.end

    def days(self) -> list[date]:
        span = (self.end - self.start).days
        return [self.start + timedelta(days=offset) for offset in range(span + 1)]


@dataclass(frozen=True)
class DailyData:
    """Actual and planned spending recorded on a single day."""

    actual_amount: int = 0
    planned_amount: int = 0


def days_in_month(year: int, month: int) -> int:
    """Return the number of days of ``month`` (28-31, leap years included)."""

    return calendar.monthrange(year, month)[1]


def month_window(year: int, month: int) -> DateWindow:
    """Return the inclusive first-to-last day window of a month."""

    return DateWindow(date(year, month, 1), date(year, month, days_in_month(year, month)))


def week_start(today: date) -> date:
    """Return the most recent Monday on or before ``today``.

    Sundays belong to the week that started six days earlier.
    """

    # date.weekday() counts from Monday=0, so it is already the step back.
    return today - timedelta(days=today.weekday())


def week_window(today: date) -> DateWindow:
    """Return the Monday-to-today window used for the weekly total."""

    return DateWindow(week_start(today), today)


def daily_totals(entries: Iterable[DatedAmount]) -> dict[date, int]:
    """Sum amounts per calendar date.

    Args:
      entries: ``(date, amount)`` pairs. Filtering by window is the query's
        job, not this function's.

    Returns:
      Mapping from date to the sum of the amounts recorded on that date.
    """

    totals: dict[date, int] = {}
    for day, amount in entries:
        totals[day] = totals.get(day, 0) + amount
    return totals


def merge_daily_data(
    actual: Mapping[date, int],
    planned: Mapping[date, int],
) -> dict[date, DailyData]:
    """Combine actual and planned per-day totals over the union of dates."""

    merged: dict[date, DailyData] = {}
    for day in sorted(set(actual) | set(planned)):
        merged[day] = DailyData(
            actual_amount=actual.get(day, 0),
            planned_amount=planned.get(day, 0),
        )
    return merged


def total_amount(amounts: Iterable[int]) -> int:
    return sum(amounts, 0)


def today_total(entries: Iterable[DatedAmount], today: date) -> int:
    """Sum the amounts dated exactly ``today``."""

    return total_amount(amount for day, amount in entries if day == today)


def month_remaining(budget: int, monthly_total: int) -> int:
    """Budget left for the month; negative values mean overspend."""

    return budget - monthly_total


def month_remaining_with_planned(remaining: int, planned_total: int) -> int:
    return remaining - planned_total


def daily_average_budget(budget: int, days: int) -> float:
    return budget / days


def weekly_average_budget(budget: int, days: int) -> float:
    """Prorate the monthly budget to seven days at a uniform daily rate."""

    return daily_average_budget(budget, days) * DAYS_PER_WEEK


def week_remaining(budget: int, days: int, weekly_total: int) -> float:
    """Prorated weekly allowance minus what was spent since Monday."""

    return weekly_average_budget(budget, days) - weekly_total


def classify_day(total: int, budget: int, days: int) -> DaySeverity:
    """Classify one day's actual spending against the daily average.

    Both thresholds are inclusive: a total equal to the daily average is
    ``ok`` and a total equal to 1.5 times the average is ``warn``.
    """

    if total == 0:
        return DaySeverity.EMPTY
    average = daily_average_budget(budget, days)
    if total <= average:
        return DaySeverity.OK
    if total <= average * DAILY_WARN_RATIO:
        return DaySeverity.WARN
    return DaySeverity.OVER


def classify_remaining(
    remaining: float,
    low_threshold: int = LOW_REMAINING_THRESHOLD,
) -> RemainingStatus:
    if remaining < 0:
        return RemainingStatus.NEGATIVE
    if remaining < low_threshold:
        return RemainingStatus.LOW
    return RemainingStatus.HEALTHY


@dataclass(frozen=True)
class MonthSummary:
    """Figures consumed by the home and history screens.

    Attributes:
      year: Calendar year of the summarised month.
      month: Month number (1-12).
      today: Reference date in the target timezone.
      monthly_budget: Budget set for the month (0 when none was set).
      monthly_total: Actual spending over the month window.
      monthly_planned_total: Planned spending over the month window.
      weekly_total: Actual spending from Monday through ``today``.
      weekly_remaining: Prorated weekly allowance minus ``weekly_total``.
      month_remaining: ``monthly_budget - monthly_total``.
      month_remaining_with_planned: ``month_remaining - monthly_planned_total``.
      today_total: Actual spending dated ``today``.
      month_status: Severity of ``month_remaining``.
      month_with_planned_status: Severity of ``month_remaining_with_planned``.
      daily_data: Merged actual/planned totals keyed by date.
      day_severity: Classification of every day of the month.
    """

    year: int
    month: int
    today: date
    monthly_budget: int
    monthly_total: int
    monthly_planned_total: int
    weekly_total: int
    weekly_remaining: float
    month_remaining: int
    month_remaining_with_planned: int
    today_total: int
    month_status: RemainingStatus
    month_with_planned_status: RemainingStatus
    daily_data: dict[date, DailyData] = field(default_factory=dict)
    day_severity: dict[date, DaySeverity] = field(default_factory=dict)


def summarise_month(
    year: int,
    month: int,
    *,
    today: date,
    monthly_budget: int,
    actual_entries: Iterable[DatedAmount],
    planned_entries: Iterable[DatedAmount],
    weekly_entries: Iterable[DatedAmount],
) -> MonthSummary:
    """Compute every budget figure for one month.

    Args:
      year: Calendar year.
      month: Month number (1-12).
      today: Reference date, normally :func:`kakeibo.engine.dates.today`.
      monthly_budget: Budget amount for the month.
      actual_entries: ``(date, amount)`` pairs of expenses in the month window.
      planned_entries: ``(date, amount)`` pairs of planned expenses in the
        month window.
      weekly_entries: ``(date, amount)`` pairs of expenses in the week window
        ending ``today``. The week may start in the previous month.

    Returns:
      A :class:`MonthSummary` with totals, remaining figures and per-day
      classification.
    """

    actual = list(actual_entries)
    planned = list(planned_entries)
    days = days_in_month(year, month)

    actual_by_day = daily_totals(actual)
    planned_by_day = daily_totals(planned)
    monthly_total = total_amount(actual_by_day.values())
    planned_total = total_amount(planned_by_day.values())
    weekly_total = total_amount(amount for _day, amount in weekly_entries)

    remaining = month_remaining(monthly_budget, monthly_total)
    remaining_with_planned = month_remaining_with_planned(remaining, planned_total)

    severity = {
        day: classify_day(actual_by_day.get(day, 0), monthly_budget, days)
        for day in month_window(year, month).days()
    }

    return MonthSummary(
        year=year,
        month=month,
        today=today,
        monthly_budget=monthly_budget,
        monthly_total=monthly_total,
        monthly_planned_total=planned_total,
        weekly_total=weekly_total,
        weekly_remaining=week_remaining(monthly_budget, days, weekly_total),
        month_remaining=remaining,
        month_remaining_with_planned=remaining_with_planned,
        today_total=today_total(actual, today),
        month_status=classify_remaining(remaining),
        month_with_planned_status=classify_remaining(remaining_with_planned),
        daily_data=merge_daily_data(actual_by_day, planned_by_day),
        day_severity=severity,
    )
