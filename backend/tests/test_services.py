from __future__ import annotations

from datetime import date

import pytest

from backend import crud, schemas, services


@pytest.fixture()
def food(db_session, user):
    return crud.create_category(db_session, user.id, schemas.CategoryCreate(name="Food"))


def _spend(db_session, user, category, amount: int, day: date) -> None:
    crud.create_expense(
        db_session,
        user.id,
        schemas.ExpenseCreate(amount=amount, category_id=category.id, expense_date=day),
    )


def test_dashboard_week_reaches_into_previous_month(db_session, user, food):
    crud.set_monthly_budget(db_session, user.id, 2024, 5, 31000)
    _spend(db_session, user, food, 1000, date(2024, 4, 29))  # Monday of the current week
    _spend(db_session, user, food, 400, date(2024, 4, 28))  # previous week
    _spend(db_session, user, food, 500, date(2024, 5, 1))

    dashboard = services.build_dashboard(db_session, user.id, today=date(2024, 5, 1))

    assert dashboard.monthly_total == 500
    assert dashboard.weekly_total == 1500
    assert dashboard.weekly_remaining == pytest.approx(7000 - 1500)
    assert dashboard.today_total == 500
    assert dashboard.month_remaining == 30500
    assert [expense.amount for expense in dashboard.today_expenses] == [500]


def test_month_summary_counts_planned_separately(db_session, user, food):
    crud.set_monthly_budget(db_session, user.id, 2024, 6, 30000)
    _spend(db_session, user, food, 3000, date(2024, 6, 3))
    crud.create_planned_expense(
        db_session,
        user.id,
        schemas.PlannedExpenseCreate(amount=25000, category_id=food.id, planned_date=date(2024, 6, 20)),
    )

    summary = services.month_summary(db_session, user.id, 2024, 6, date(2024, 6, 5))

    assert summary.month_remaining == 27000
    assert summary.month_remaining_with_planned == 2000
    assert summary.month_with_planned_status.value == "low"
    assert summary.weekly_total == 3000


def test_day_detail_totals(db_session, user, food):
    _spend(db_session, user, food, 300, date(2024, 6, 3))
    _spend(db_session, user, food, 450, date(2024, 6, 3))

    detail = services.build_day_detail(db_session, user.id, date(2024, 6, 3))

    assert detail.actual_total == 750
    assert detail.planned_total == 0
    assert len(detail.expenses) == 2
