"""User-scoped CRUD helpers for the ledger backend.

Every function takes the authenticated user's id explicitly and filters on
it; rows owned by another user behave exactly like missing rows.
"""
from __future__ import annotations

from datetime import date
from typing import List, Sequence

from sqlalchemy import and_, delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session, joinedload

from kakeibo.engine.logging import setup_logger

from . import models, schemas

LOG = setup_logger(__name__)

DEFAULT_CATEGORIES: Sequence[str] = (
    "Food",
    "Transport",
    "Daily goods",
    "Entertainment",
    "Medical",
    "Other",
)

_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class NotAuthenticatedError(RuntimeError):
    """Raised when a store operation is attempted without a current user."""


class EntityNotFoundError(RuntimeError):
    """Raised when an entity cannot be located in the database."""


class EntityConflictError(RuntimeError):
    """Raised when a unique constraint is violated."""


class CategoryInUseError(RuntimeError):
    """Raised when deleting a category that expenses or planned expenses still use."""


def _require_user(user_id: int | None) -> int:
    if user_id is None:
        raise NotAuthenticatedError("Not authenticated")
    return user_id


# Categories ---------------------------------------------------------------


def list_categories(session: Session, user_id: int | None) -> List[models.Category]:
    stmt = (
        select(models.Category)
        .where(models.Category.user_id == _require_user(user_id))
        .order_by(models.Category.sort_order, models.Category.id)
    )
    return list(session.scalars(stmt))


def get_category(session: Session, user_id: int | None, category_id: int) -> models.Category:
    stmt = select(models.Category).where(
        models.Category.id == category_id,
        models.Category.user_id == _require_user(user_id),
    )
    category = session.scalar(stmt)
    if category is None:
        raise EntityNotFoundError(f"Category {category_id} not found")
    return category


def create_category(
    session: Session,
    user_id: int | None,
    category_in: schemas.CategoryCreate,
) -> models.Category:
    owner = _require_user(user_id)
    next_order = session.scalar(
        select(func.coalesce(func.max(models.Category.sort_order), 0)).where(
            models.Category.user_id == owner
        )
    )
    category = models.Category(user_id=owner, name=category_in.name, sort_order=(next_order or 0) + 1)
    session.add(category)
    session.flush()
    session.refresh(category)
    return category


def update_category(
    session: Session,
    user_id: int | None,
    category_id: int,
    update_in: schemas.CategoryUpdate,
) -> models.Category:
    category = get_category(session, user_id, category_id)
    for field, value in update_in.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(category, field, value)
    session.flush()
    session.refresh(category)
    return category


def count_category_references(session: Session, user_id: int | None, category_id: int) -> tuple[int, int]:
    """Return how many expenses and planned expenses of the user use a category."""

    owner = _require_user(user_id)
    expense_count = session.scalar(
        select(func.count(models.Expense.id)).where(
            models.Expense.user_id == owner,
            models.Expense.category_id == category_id,
        )
    )
    planned_count = session.scalar(
        select(func.count(models.PlannedExpense.id)).where(
            models.PlannedExpense.user_id == owner,
            models.PlannedExpense.category_id == category_id,
        )
    )
    return int(expense_count or 0), int(planned_count or 0)


def delete_category(session: Session, user_id: int | None, category_id: int) -> None:
    """Delete an unreferenced category in a single conditional statement.

    Raises:
      EntityNotFoundError: If the category does not exist for this user.
      CategoryInUseError: If any expense or planned expense references it.
    """

    owner = _require_user(user_id)
    stmt = delete(models.Category).where(
        models.Category.id == category_id,
        models.Category.user_id == owner,
        ~select(models.Expense.id).where(models.Expense.category_id == models.Category.id).exists(),
        ~select(models.PlannedExpense.id).where(models.PlannedExpense.category_id == models.Category.id).exists(),
    )
    try:
        result = session.execute(stmt, execution_options={"synchronize_session": False})
    except IntegrityError as exc:
        # A reference inserted concurrently trips the RESTRICT foreign key.
        raise CategoryInUseError(_category_in_use_message(category_id)) from exc
    if result.rowcount:
        return
    category = get_category(session, owner, category_id)
    raise CategoryInUseError(_category_in_use_message(category_id, category.name))


def _category_in_use_message(category_id: int, name: str | None = None) -> str:
    label = f"'{name}'" if name else f"{category_id}"
    return (
        f"Category {label} is used by expenses or planned expenses; "
        "reassign or delete them before deleting the category"
    )


def seed_default_categories(session: Session, user_id: int | None) -> List[models.Category]:
    """Create the six default categories for a user that has none.

    Returns the categories created, which is empty once the user owns at least
    one category.
    """

    owner = _require_user(user_id)
    has_any = session.scalar(select(models.Category.id).where(models.Category.user_id == owner).limit(1))
    if has_any is not None:
        return []
    created = [
        models.Category(user_id=owner, name=name, sort_order=position)
        for position, name in enumerate(DEFAULT_CATEGORIES, start=1)
    ]
    session.add_all(created)
    session.flush()
    LOG.info("Seeded %d default categories", len(created), extra={"user_id": owner})
    return created


# Expenses -----------------------------------------------------------------


def list_expenses_on(session: Session, user_id: int | None, day: date) -> List[models.Expense]:
    """Expenses dated ``day``, newest first, with their category loaded."""

    stmt = (
        select(models.Expense)
        .options(joinedload(models.Expense.category))
        .where(models.Expense.user_id == _require_user(user_id), models.Expense.expense_date == day)
        .order_by(models.Expense.created_at.desc(), models.Expense.id.desc())
    )
    return list(session.scalars(stmt))


def list_expenses_between(session: Session, user_id: int | None, start: date, end: date) -> List[models.Expense]:
    """Expenses dated within the inclusive ``[start, end]`` window."""

    stmt = (
        select(models.Expense)
        .where(
            models.Expense.user_id == _require_user(user_id),
            and_(models.Expense.expense_date >= start, models.Expense.expense_date <= end),
        )
        .order_by(models.Expense.expense_date, models.Expense.id)
    )
    return list(session.scalars(stmt))


def get_expense(session: Session, user_id: int | None, expense_id: int) -> models.Expense:
    stmt = select(models.Expense).where(
        models.Expense.id == expense_id,
        models.Expense.user_id == _require_user(user_id),
    )
    expense = session.scalar(stmt)
    if expense is None:
        raise EntityNotFoundError(f"Expense {expense_id} not found")
    return expense


def create_expense(session: Session, user_id: int | None, expense_in: schemas.ExpenseCreate) -> models.Expense:
    owner = _require_user(user_id)
    get_category(session, owner, expense_in.category_id)
    expense = models.Expense(user_id=owner, **expense_in.model_dump())
    session.add(expense)
    session.flush()
    session.refresh(expense)
    return expense


def update_expense(
    session: Session,
    user_id: int | None,
    expense_id: int,
    update_in: schemas.ExpenseUpdate,
) -> models.Expense:
    expense = get_expense(session, user_id, expense_id)
    changes = update_in.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        get_category(session, user_id, changes["category_id"])
    for field, value in changes.items():
        if value is None and field != "memo":
            continue
        setattr(expense, field, value)
    session.flush()
    session.refresh(expense)
    return expense


def delete_expense(session: Session, user_id: int | None, expense_id: int) -> None:
    expense = get_expense(session, user_id, expense_id)
    session.delete(expense)
    session.flush()


# Planned expenses ---------------------------------------------------------


def list_planned_between(
    session: Session,
    user_id: int | None,
    start: date,
    end: date,
) -> List[models.PlannedExpense]:
    """Planned expenses within ``[start, end]``, oldest date first.

    Read failures are logged and yield an empty list so that a broken planned
    table never takes the month view down with it.
    """

    owner = _require_user(user_id)
    stmt = (
        select(models.PlannedExpense)
        .options(joinedload(models.PlannedExpense.category))
        .where(
            models.PlannedExpense.user_id == owner,
            and_(models.PlannedExpense.planned_date >= start, models.PlannedExpense.planned_date <= end),
        )
        .order_by(models.PlannedExpense.planned_date, models.PlannedExpense.id)
    )
    # A failed statement aborts the whole transaction on PostgreSQL; the
    # savepoint keeps the rest of the request usable.
    try:
        with session.begin_nested():
            return list(session.scalars(stmt))
    except SQLAlchemyError:
        LOG.exception("Error fetching planned expenses between %s and %s", start, end, extra={"user_id": owner})
        return []


def list_planned_on(session: Session, user_id: int | None, day: date) -> List[models.PlannedExpense]:
    return list_planned_between(session, user_id, day, day)


def get_planned_expense(session: Session, user_id: int | None, planned_id: int) -> models.PlannedExpense:
    stmt = select(models.PlannedExpense).where(
        models.PlannedExpense.id == planned_id,
        models.PlannedExpense.user_id == _require_user(user_id),
    )
    planned = session.scalar(stmt)
    if planned is None:
        raise EntityNotFoundError(f"Planned expense {planned_id} not found")
    return planned


def create_planned_expense(
    session: Session,
    user_id: int | None,
    planned_in: schemas.PlannedExpenseCreate,
) -> models.PlannedExpense:
    owner = _require_user(user_id)
    get_category(session, owner, planned_in.category_id)
    planned = models.PlannedExpense(user_id=owner, **planned_in.model_dump())
    session.add(planned)
    session.flush()
    session.refresh(planned)
    return planned


def update_planned_expense(
    session: Session,
    user_id: int | None,
    planned_id: int,
    update_in: schemas.PlannedExpenseUpdate,
) -> models.PlannedExpense:
    planned = get_planned_expense(session, user_id, planned_id)
    changes = update_in.model_dump(exclude_unset=True)
    if changes.get("category_id") is not None:
        get_category(session, user_id, changes["category_id"])
    for field, value in changes.items():
        if value is None and field != "memo":
            continue
        setattr(planned, field, value)
    session.flush()
    session.refresh(planned)
    return planned


def delete_planned_expense(session: Session, user_id: int | None, planned_id: int) -> None:
    planned = get_planned_expense(session, user_id, planned_id)
    session.delete(planned)
    session.flush()


# Monthly budgets ----------------------------------------------------------


def get_monthly_budget(session: Session, user_id: int | None, year: int, month: int) -> int:
    """Budget amount for the month; a month without a row counts as 0."""

    stmt = select(models.MonthlyBudget.budget_amount).where(
        models.MonthlyBudget.user_id == _require_user(user_id),
        models.MonthlyBudget.year == year,
        models.MonthlyBudget.month == month,
    )
    amount = session.scalar(stmt)
    return int(amount) if amount is not None else 0


def set_monthly_budget(
    session: Session,
    user_id: int | None,
    year: int,
    month: int,
    budget_amount: int,
) -> models.MonthlyBudget:
    """Insert the month's budget or overwrite the existing one.

    Runs as a single ``INSERT ... ON CONFLICT (user_id, year, month) DO
    UPDATE`` on SQLite and PostgreSQL.
    """

    owner = _require_user(user_id)
    key = (
        models.MonthlyBudget.user_id == owner,
        models.MonthlyBudget.year == year,
        models.MonthlyBudget.month == month,
    )
    dialect = session.get_bind().dialect.name
    if dialect in _UPSERT_DIALECTS:
        stmt = _UPSERT_DIALECTS[dialect](models.MonthlyBudget).values(
            user_id=owner,
            year=year,
            month=month,
            budget_amount=budget_amount,
            updated_at=models.utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id", "year", "month"],
            set_={"budget_amount": stmt.excluded.budget_amount, "updated_at": stmt.excluded.updated_at},
        )
        session.execute(stmt)
        budget = session.scalar(select(models.MonthlyBudget).where(*key).execution_options(populate_existing=True))
    else:
        budget = session.scalar(select(models.MonthlyBudget).where(*key))
        if budget is None:
            budget = models.MonthlyBudget(user_id=owner, year=year, month=month)
            session.add(budget)
        budget.budget_amount = budget_amount
        session.flush()
    LOG.debug("Budget for %04d-%02d set to %d", year, month, budget_amount, extra={"user_id": owner})
    return budget
