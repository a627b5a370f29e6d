from __future__ import annotations

from datetime import date
from typing import Mapping, Optional

from ..common.datetime_utils import is_default_weekend, iter_dates, month_bounds
from ..core.enums import DayType
from .model import CalendarRef, NonWorkingDays
from .repository import CalendarRepository


def default_day_type(d: date) -> DayType:
    return DayType.WEEKEND if is_default_weekend(d) else DayType.WORKING


class CalendarResolver:
    """Classifies dates as working / weekend / holiday for one calendar.

    Explicit entries take precedence. A date without an entry falls back to
    the day-of-week default (Saturday/Sunday are weekends). Missing
    configuration is never an error.
    """

    def __init__(self, calendars: CalendarRepository):
        self._calendars = calendars

    def resolve(self, ref: CalendarRef, day: date) -> DayType:
        entries = self._calendars.list_entries(ref=ref, start=day, end=day)
        for e in entries:
            if e.day == day:
                return e.day_type
        return default_day_type(day)

    def day_types_in_range(self, ref: CalendarRef, start: date, end: date) -> dict[date, DayType]:
        explicit = {e.day: e.day_type for e in self._calendars.list_entries(ref=ref, start=start, end=end)}
        return {d: explicit.get(d, default_day_type(d)) for d in iter_dates(start, end)}

    def day_types_for_month(self, ref: CalendarRef, year: int, month: int) -> dict[date, DayType]:
        start, end = month_bounds(year, month)
        return self.day_types_in_range(ref, start, end)

    def non_working_days_in_range(self, ref: CalendarRef, start: date, end: date) -> NonWorkingDays:
        return split_non_working(self.day_types_in_range(ref, start, end))

    def working_days_in_range(self, ref: CalendarRef, start: date, end: date) -> list[date]:
        return [d for d, t in sorted(self.day_types_in_range(ref, start, end).items()) if t == DayType.WORKING]

    def count_working_days(self, ref: CalendarRef, start: date, end: date) -> int:
        return len(self.working_days_in_range(ref, start, end))

    def set_day_type(self, ref: CalendarRef, day: date, day_type: DayType, description: Optional[str] = None) -> None:
        self._calendars.upsert(ref=ref, day=day, day_type=DayType(day_type), description=description)

    def delete_day_type(self, ref: CalendarRef, day: date) -> bool:
        return self._calendars.delete(ref=ref, day=day)

    def quick_setup_month(self, ref: CalendarRef, year: int, month: int) -> int:
        """Write the day-of-week default for every day of a month; returns count."""
        start, end = month_bounds(year, month)
        count = 0
        for d in iter_dates(start, end):
            self._calendars.upsert(ref=ref, day=d, day_type=default_day_type(d))
            count += 1
        return count


def split_non_working(day_types: Mapping[date, DayType]) -> NonWorkingDays:
    weekends = sorted(d for d, t in day_types.items() if t == DayType.WEEKEND)
    holidays = sorted(d for d, t in day_types.items() if t == DayType.HOLIDAY)
    return NonWorkingDays(weekends=weekends, holidays=holidays)


def count_leave_days(start: date, end: date, non_working: NonWorkingDays) -> int:
    """Calendar span minus weekends and holidays, never below 0."""
    excluded = non_working.as_set()
    return sum(1 for d in iter_dates(start, end) if d not in excluded)
