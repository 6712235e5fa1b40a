"""Pydantic schemas for serialising ledger data."""
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Dict, List, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


def _strip_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped:
        raise ValueError("Category name must not be blank")
    return stripped


def _blank_memo_to_none(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


CategoryName = Annotated[str, AfterValidator(_strip_name), Field(max_length=100)]
Memo = Annotated[Optional[str], AfterValidator(_blank_memo_to_none)]


class UserRead(ORMModel):
    id: int
    email: str


class SessionRead(BaseModel):
    user: UserRead
    seeded_categories: int


class CategoryBase(BaseModel):
    name: CategoryName


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[CategoryName] = None
    sort_order: Optional[int] = Field(None, ge=0)


class CategoryRead(CategoryBase, ORMModel):
    id: int
    sort_order: int


class ExpenseBase(BaseModel):
    amount: int = Field(..., ge=0)
    category_id: int = Field(..., ge=1)
    expense_date: date
    memo: Memo = None


class ExpenseCreate(ExpenseBase):
    pass


class ExpenseUpdate(BaseModel):
    amount: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = Field(None, ge=1)
    expense_date: Optional[date] = None
    memo: Memo = None


class ExpenseRead(ExpenseBase, ORMModel):
    id: int
    category_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class PlannedExpenseBase(BaseModel):
    amount: int = Field(..., ge=0)
    category_id: int = Field(..., ge=1)
    planned_date: date
    memo: Memo = None


class PlannedExpenseCreate(PlannedExpenseBase):
    pass


class PlannedExpenseUpdate(BaseModel):
    amount: Optional[int] = Field(None, ge=0)
    category_id: Optional[int] = Field(None, ge=1)
    planned_date: Optional[date] = None
    memo: Memo = None


class PlannedExpenseRead(PlannedExpenseBase, ORMModel):
    id: int
    category_name: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BudgetUpdate(BaseModel):
    budget_amount: int = Field(..., ge=0)


class BudgetRead(BaseModel):
    year: int
    month: int
    budget_amount: int


class DailyDataRead(BaseModel):
    actual_amount: int
    planned_amount: int


class CalendarCellRead(BaseModel):
    date: Optional[date]
    day: Optional[int]
    actual_amount: int
    planned_amount: int
    severity: str
    is_today: bool


class MonthRef(BaseModel):
    year: int
    month: int


class DashboardRead(BaseModel):
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
    month_status: str
    month_with_planned_status: str
    today_expenses: List[ExpenseRead]
    categories: List[CategoryRead]


class HistoryRead(BaseModel):
    year: int
    month: int
    monthly_budget: int
    total_expenses: int
    total_planned: int
    daily_data: Dict[date, DailyDataRead]
    calendar: List[CalendarCellRead]
    previous: MonthRef
    next: MonthRef
    categories: List[CategoryRead]


class DayDetailRead(BaseModel):
    date: date
    expenses: List[ExpenseRead]
    planned_expenses: List[PlannedExpenseRead]
    actual_total: int
    planned_total: int
