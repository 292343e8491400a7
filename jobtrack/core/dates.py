"""Instant vs LocalDate helpers.

Two kinds of "date" live in the model:
  - Instant: a point in time (log entries, interviews, created_at). Stored as a
    timezone-naive local ``datetime``; aware values are converted to local time.
  - LocalDate: a calendar day (opportunity date_applied). Stored as ``date`` and
    never routed through UTC, so "today" is the user's wall-clock day.
"""

import math
from datetime import date, datetime, time, timedelta

_ONE_DAY = timedelta(days=1)


def to_local(instant: datetime) -> datetime:
    """Return a naive local datetime for *instant*."""
    if instant.tzinfo is not None:
        return instant.astimezone().replace(tzinfo=None)
    return instant


def parse_local_date(value: object) -> date:
    """Coerce a date, datetime or ISO string into a local calendar day.

    Strings carrying a full timestamp are truncated to their first ten
    characters (``YYYY-MM-DD``) before parsing.
    """
    if isinstance(value, datetime):
        return to_local(value).date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()[:10]
        try:
            return date.fromisoformat(text)
        except ValueError:
            msg = f"not a calendar date: {value!r}"
            raise ValueError(msg) from None
    msg = f"cannot interpret {type(value).__name__} as a calendar date"
    raise TypeError(msg)


def local_day(instant: datetime) -> date:
    return to_local(instant).date()


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def days_open(date_applied: date, now: datetime | None = None) -> int:
    """Whole days (rounded up) between local midnight of *date_applied* and *now*."""
    now = to_local(now or datetime.now())
    elapsed = abs(now - start_of_day(date_applied))
    return math.ceil(elapsed / _ONE_DAY)


def format_short_date(day: date) -> str:
    """M/D/YYYY, the format used in tables and PDFs."""
    return f"{day.month}/{day.day}/{day.year}"


def format_timestamp(instant: datetime) -> str:
    """M/D/YYYY, h:MM AM/PM."""
    local = to_local(instant)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return f"{format_short_date(local.date())}, {hour}:{local.minute:02d} {meridiem}"
