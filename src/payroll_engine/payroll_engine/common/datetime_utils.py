from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import Iterator


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def iter_dates(start: date, end: date) -> Iterator[date]:
    """Inclusive day-by-day iteration; yields nothing when end < start."""
    cur = start
    while cur <= end:
        yield cur
        cur += timedelta(days=1)


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def month_bounds(year: int, month: int) -> tuple[date, date]:
    return date(year, month, 1), date(year, month, days_in_month(year, month))


def next_month(year: int, month: int) -> tuple[int, int]:
    if month == 12:
        return year + 1, 1
    return year, month + 1


def iter_months(start_year: int, start_month: int, end_year: int, end_month: int) -> Iterator[tuple[int, int]]:
    y, m = start_year, start_month
    while (y, m) <= (end_year, end_month):
        yield y, m
        y, m = next_month(y, m)


def is_default_weekend(d: date) -> bool:
    return d.weekday() >= 5


def worked_minutes(check_in: datetime, check_out: datetime) -> int:
    """Whole minutes between two timestamps (floored), never below 0."""
    minutes = int((check_out - check_in).total_seconds() // 60)
    return max(minutes, 0)
