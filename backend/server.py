"""FastAPI application exposing the ledger endpoints."""
from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import date
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kakeibo import __version__
from kakeibo.config import load_settings
from kakeibo.engine.aggregation import month_window
from kakeibo.engine.dates import today as local_today
from kakeibo.engine.logging import setup_logger

from . import crud, database, models, schemas, services
from .identity import get_current_user

settings = load_settings()
LOG = setup_logger(__name__, json_format=settings.json_logs, level=settings.log_level)


@asynccontextmanager
async def lifespan(_: FastAPI):
    database.init_db()
    yield


app = FastAPI(title="Kakeibo Ledger Backend", version=__version__, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SQLAlchemyError)
async def store_failure_handler(_: Request, exc: SQLAlchemyError) -> JSONResponse:
    LOG.error("Store failure: %s", exc.__class__.__name__, exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "The operation could not be completed; nothing was saved"},
    )


@app.exception_handler(crud.NotAuthenticatedError)
async def not_authenticated_handler(_: Request, exc: crud.NotAuthenticatedError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _not_found(exc: crud.EntityNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# Identity -----------------------------------------------------------------


@app.post("/auth/callback", response_model=schemas.SessionRead)
def auth_callback(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.SessionRead:
    seeded = crud.seed_default_categories(db, user.id)
    return schemas.SessionRead(user=schemas.UserRead.model_validate(user), seeded_categories=len(seeded))


@app.get("/me", response_model=schemas.UserRead)
def read_me(user: models.User = Depends(get_current_user)) -> schemas.UserRead:
    return user


# Categories ---------------------------------------------------------------


@app.get("/categories", response_model=List[schemas.CategoryRead])
def list_categories(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> List[schemas.CategoryRead]:
    return crud.list_categories(db, user.id)


@app.post(
    "/categories",
    response_model=schemas.CategoryRead,
    status_code=status.HTTP_201_CREATED,
)
def create_category(
    category_in: schemas.CategoryCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.CategoryRead:
    return crud.create_category(db, user.id, category_in)


@app.put("/categories/{category_id}", response_model=schemas.CategoryRead)
def update_category(
    category_id: int,
    update_in: schemas.CategoryUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.CategoryRead:
    try:
        return crud.update_category(db, user.id, category_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> None:
    try:
        crud.delete_category(db, user.id, category_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc
    except crud.CategoryInUseError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc


# Expenses -----------------------------------------------------------------


@app.get("/expenses", response_model=List[schemas.ExpenseRead])
def list_expenses(
    on: Optional[date] = Query(default=None, description="Day to list; defaults to today"),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> List[schemas.ExpenseRead]:
    return crud.list_expenses_on(db, user.id, on or local_today())


@app.post(
    "/expenses",
    response_model=schemas.ExpenseRead,
    status_code=status.HTTP_201_CREATED,
)
def create_expense(
    expense_in: schemas.ExpenseCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    try:
        return crud.create_expense(db, user.id, expense_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.get("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
def get_expense(
    expense_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    try:
        return crud.get_expense(db, user.id, expense_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.put("/expenses/{expense_id}", response_model=schemas.ExpenseRead)
def update_expense(
    expense_id: int,
    update_in: schemas.ExpenseUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.ExpenseRead:
    try:
        return crud.update_expense(db, user.id, expense_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_expense(
    expense_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> None:
    try:
        crud.delete_expense(db, user.id, expense_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


# Planned expenses ---------------------------------------------------------


@app.get("/planned-expenses", response_model=List[schemas.PlannedExpenseRead])
def list_planned_expenses(
    year: Optional[int] = Query(default=None, ge=1),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    on: Optional[date] = Query(default=None),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> List[schemas.PlannedExpenseRead]:
    if on is not None:
        return crud.list_planned_on(db, user.id, on)
    if year is None or month is None:
        raise HTTPException(
            status_code=422,
            detail="Provide either 'on' or both 'year' and 'month'",
        )
    window = month_window(year, month)
    return crud.list_planned_between(db, user.id, window.start, window.end)


@app.post(
    "/planned-expenses",
    response_model=schemas.PlannedExpenseRead,
    status_code=status.HTTP_201_CREATED,
)
def create_planned_expense(
    planned_in: schemas.PlannedExpenseCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.PlannedExpenseRead:
    try:
        return crud.create_planned_expense(db, user.id, planned_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.get("/planned-expenses/{planned_id}", response_model=schemas.PlannedExpenseRead)
def get_planned_expense(
    planned_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.PlannedExpenseRead:
    try:
        return crud.get_planned_expense(db, user.id, planned_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.put("/planned-expenses/{planned_id}", response_model=schemas.PlannedExpenseRead)
def update_planned_expense(
    planned_id: int,
    update_in: schemas.PlannedExpenseUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.PlannedExpenseRead:
    try:
        return crud.update_planned_expense(db, user.id, planned_id, update_in)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


@app.delete("/planned-expenses/{planned_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_planned_expense(
    planned_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> None:
    try:
        crud.delete_planned_expense(db, user.id, planned_id)
    except crud.EntityNotFoundError as exc:
        raise _not_found(exc) from exc


# Budgets and views --------------------------------------------------------


@app.get("/budgets/{year}/{month}", response_model=schemas.BudgetRead)
def get_budget(
    year: int,
    month: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.BudgetRead:
    _check_month(month)
    amount = crud.get_monthly_budget(db, user.id, year, month)
    return schemas.BudgetRead(year=year, month=month, budget_amount=amount)


@app.put("/budgets/{year}/{month}", response_model=schemas.BudgetRead)
def set_budget(
    year: int,
    month: int,
    budget_in: schemas.BudgetUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.BudgetRead:
    _check_month(month)
    budget = crud.set_monthly_budget(db, user.id, year, month, budget_in.budget_amount)
    return schemas.BudgetRead(year=budget.year, month=budget.month, budget_amount=budget.budget_amount)


@app.get("/dashboard", response_model=schemas.DashboardRead)
def get_dashboard(
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.DashboardRead:
    return services.build_dashboard(db, user.id)


@app.get("/history", response_model=schemas.HistoryRead)
def get_history(
    year: Optional[int] = Query(default=None, ge=1),
    month: Optional[int] = Query(default=None, ge=1, le=12),
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.HistoryRead:
    return services.build_history(db, user.id, year, month)


@app.get("/days/{day}", response_model=schemas.DayDetailRead)
def get_day(
    day: date,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(database.get_db),
) -> schemas.DayDetailRead:
    return services.build_day_detail(db, user.id, day)


def _check_month(month: int) -> None:
    if not 1 <= month <= 12:
        raise HTTPException(status_code=422, detail="Month must be 1-12")


@app.get("/health", tags=["system"])
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
