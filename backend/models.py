"""SQLAlchemy models for the ledger backend."""
from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Optional

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


class User(Base):
    __tablename__ = "users"

    id: int = Column(Integer, primary_key=True, index=True)
    email: str = Column(String(255), unique=True, nullable=False, index=True)
    api_token: str = Column(String(128), unique=True, nullable=False, index=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)


class Category(Base):
    __tablename__ = "categories"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name: str = Column(String(100), nullable=False)
    sort_order: int = Column(Integer, nullable=False, default=0)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    # No delete cascade: a referenced category must survive until its rows are gone.
    expenses = relationship("Expense", back_populates="category", passive_deletes="all")
    planned_expenses = relationship("PlannedExpense", back_populates="category", passive_deletes="all")


class Expense(Base):
    __tablename__ = "expenses"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount: int = Column(Integer, nullable=False)
    category_id: int = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    expense_date: date = Column(Date, nullable=False, index=True)
    memo: Optional[str] = Column(Text, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="expenses")

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category is not None else None


class PlannedExpense(Base):
    __tablename__ = "planned_expenses"

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount: int = Column(Integer, nullable=False)
    category_id: int = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    planned_date: date = Column(Date, nullable=False, index=True)
    memo: Optional[str] = Column(Text, nullable=True)
    created_at: datetime = Column(DateTime, nullable=False, default=utcnow)
    updated_at: datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="planned_expenses")

    @property
    def category_name(self) -> Optional[str]:
        return self.category.name if self.category is not None else None


class MonthlyBudget(Base):
    __tablename__ = "monthly_budgets"
    __table_args__ = (UniqueConstraint("user_id", "year", "month", name="uq_monthly_budget_user_month"),)

    id: int = Column(Integer, primary_key=True, index=True)
    user_id: int = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    year: int = Column(Integer, nullable=False)
    month: int = Column(Integer, nullable=False)
    budget_amount: int = Column(Integer, nullable=False, default=0)
    updated_at: datetime = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
