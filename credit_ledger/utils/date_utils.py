"""Date manipulation utilities"""

import re
from datetime import date, timedelta
from typing import Tuple

_PERIOD_RE = re.compile(r"^(\d{4})-(\d{2})$")


def add_days(from_date: date, days: int) -> date:
    """Due date for credit terms in calendar days"""
    return from_date + timedelta(days=days)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end (negative if end is earlier)"""
    return (end - start).days


def period_bounds(period: str) -> Tuple[date, date]:
    """
    Resolve a month bucket like "2026-03" to [first day, first day of next month).

    Raises:
        ValueError: if the period is not a valid YYYY-MM string
    """
    match = _PERIOD_RE.match(period)
    if not match:
        raise ValueError(f"Invalid period {period!r}, expected YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in period {period!r}")

    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end
