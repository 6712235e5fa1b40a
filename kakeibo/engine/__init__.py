"""Budget and calendar computations for kakeibo."""

from __future__ import annotations

from . import aggregation, calendar, dates

__all__ = ["aggregation", "calendar", "dates"]
