"""Page-level read models built from the stores and the aggregation engine."""
from __future__ import annotations

from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from kakeibo.engine import aggregation
from kakeibo.engine.calendar import calendar_grid, shift_month
from kakeibo.engine.dates import today as local_today

from . import crud, schemas


def month_summary(
    session: Session,
    user_id: int,
    year: int,
    month: int,
    today: date,
) -> aggregation.MonthSummary:
    """Fetch the month's rows for ``user_id`` and compute every budget figure."""

    window = aggregation.month_window(year, month)
    week = aggregation.week_window(today)
    budget = crud.get_monthly_budget(session, user_id, year, month)
    expenses = crud.list_expenses_between(session, user_id, window.start, window.end)
    planned = crud.list_planned_between(session, user_id, window.start, window.end)
    weekly = crud.list_expenses_between(session, user_id, week.start, week.end)
    return aggregation.summarise_month(
        year,
        month,
        today=today,
        monthly_budget=budget,
        actual_entries=[(row.expense_date, row.amount) for row in expenses],
        planned_entries=[(row.planned_date, row.amount) for row in planned],
        weekly_entries=[(row.expense_date, row.amount) for row in weekly],
    )


def build_dashboard(session: Session, user_id: int, today: Optional[date] = None) -> schemas.DashboardRead:
    """Home screen figures for the current month in the target timezone."""

    current = today or local_today()
    summary = month_summary(session, user_id, current.year, current.month, current)
    today_expenses = crud.list_expenses_on(session, user_id, current)
    categories = crud.list_categories(session, user_id)
    return schemas.DashboardRead(
        year=summary.year,
        month=summary.month,
        today=current,
        monthly_budget=summary.monthly_budget,
        monthly_total=summary.monthly_total,
        monthly_planned_total=summary.monthly_planned_total,
        weekly_total=summary.weekly_total,
        weekly_remaining=summary.weekly_remaining,
        month_remaining=summary.month_remaining,
        month_remaining_with_planned=summary.month_remaining_with_planned,
        today_total=summary.today_total,
        month_status=summary.month_status.value,
        month_with_planned_status=summary.month_with_planned_status.value,
        today_expenses=[schemas.ExpenseRead.model_validate(row) for row in today_expenses],
        categories=[schemas.CategoryRead.model_validate(row) for row in categories],
    )


def build_history(
    session: Session,
    user_id: int,
    year: Optional[int] = None,
    month: Optional[int] = None,
    today: Optional[date] = None,
) -> schemas.HistoryRead:
    """Calendar view of one month; defaults to the current month."""

    current = today or local_today()
    year = year or current.year
    month = month or current.month
    summary = month_summary(session, user_id, year, month, current)
    cells = calendar_grid(year, month, summary.daily_data, summary.monthly_budget, current)
    previous_year, previous_month = shift_month(year, month, -1)
    next_year, next_month = shift_month(year, month, 1)
    return schemas.HistoryRead(
        year=year,
        month=month,
        monthly_budget=summary.monthly_budget,
        total_expenses=summary.monthly_total,
        total_planned=summary.monthly_planned_total,
        daily_data={
            day: schemas.DailyDataRead(actual_amount=data.actual_amount, planned_amount=data.planned_amount)
            for day, data in summary.daily_data.items()
        },
        calendar=[
            schemas.CalendarCellRead(
                date=cell.date,
                day=cell.day,
                actual_amount=cell.actual_amount,
                planned_amount=cell.planned_amount,
                severity=cell.severity.value,
                is_today=cell.is_today,
            )
            for cell in cells
        ],
        previous=schemas.MonthRef(year=previous_year, month=previous_month),
        next=schemas.MonthRef(year=next_year, month=next_month),
        categories=[schemas.CategoryRead.model_validate(row) for row in crud.list_categories(session, user_id)],
    )


def build_day_detail(session: Session, user_id: int, day: date) -> schemas.DayDetailRead:
    """Actual and planned items recorded on one calendar day."""

    expenses = crud.list_expenses_on(session, user_id, day)
    planned = crud.list_planned_on(session, user_id, day)
    return schemas.DayDetailRead(
        date=day,
        expenses=[schemas.ExpenseRead.model_validate(row) for row in expenses],
        planned_expenses=[schemas.PlannedExpenseRead.model_validate(row) for row in planned],
        actual_total=aggregation.total_amount(row.amount for row in expenses),
        planned_total=aggregation.total_amount(row.amount for row in planned),
    )
