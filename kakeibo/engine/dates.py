"""Calendar-date helpers pinned to the household's timezone (UTC+9).

The server may run in any region, so "today" is never derived from the
host's local clock. Every helper shifts a UTC instant by a fixed offset and
reads the date fields from the shifted value.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Final

TARGET_UTC_OFFSET: Final[timedelta] = timedelta(hours=9)
ISO_DATE_FORMAT: Final[str] = "%Y-%m-%d"

__all__ = ["TARGET_UTC_OFFSET", "format_date", "parse_date", "today"]


def format_date(instant: datetime, offset: timedelta = TARGET_UTC_OFFSET) -> date:
    """Return the calendar date of ``instant`` in the target timezone.

    Aware datetimes are normalised to UTC first; naive datetimes are read as
    UTC wall-clock values.
    """

    if instant.tzinfo is not None:
        instant = instant.astimezone(UTC).replace(tzinfo=None)
    shifted = instant + offset
    return date(shifted.year, shifted.month, shifted.day)


def today(now: datetime | None = None, offset: timedelta = TARGET_UTC_OFFSET) -> date:
    """Return the current date in the target timezone.

    Args:
      now: Optional instant used instead of the wall clock (tests, replays).
      offset: Offset from UTC of the target timezone.
    """

    instant = now if now is not None else datetime.now(tz=UTC)
    return format_date(instant, offset)


def parse_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` string into a :class:`date`."""

    return datetime.strptime(value.strip(), ISO_DATE_FORMAT).date()
