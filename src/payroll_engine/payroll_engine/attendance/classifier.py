from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Callable, Optional

from ..core.enums import DayStatus, DayType
from .model import AttendanceRecord


@dataclass(frozen=True)
class DayFacts:
    """Everything the classifier needs to know about one date."""

    day: date
    today: date
    day_type: DayType
    join_date: Optional[date] = None
    record: Optional[AttendanceRecord] = None
    is_lop: bool = False
    is_paid_leave: bool = False


# First match wins. Payroll and any report must classify through this order.
DAY_STATUS_PRIORITY: tuple[DayStatus, ...] = (
    DayStatus.FUTURE,
    DayStatus.PRE_JOIN,
    DayStatus.HOLIDAY,
    DayStatus.WEEKEND,
    DayStatus.PRESENT,
    DayStatus.LOP,
    DayStatus.LEAVE,
    DayStatus.NOT_MARKED,
)

_RULES: dict[DayStatus, Callable[[DayFacts], bool]] = {
    DayStatus.FUTURE: lambda f: f.day > f.today,
    DayStatus.PRE_JOIN: lambda f: f.join_date is not None and f.day < f.join_date,
    DayStatus.HOLIDAY: lambda f: f.day_type == DayType.HOLIDAY,
    DayStatus.WEEKEND: lambda f: f.day_type == DayType.WEEKEND,
    DayStatus.PRESENT: lambda f: f.record is not None and f.record.is_present,
    DayStatus.LOP: lambda f: f.is_lop,
    DayStatus.LEAVE: lambda f: f.is_paid_leave,
    DayStatus.NOT_MARKED: lambda f: True,
}


def classify_day(facts: DayFacts) -> DayStatus:
    for status in DAY_STATUS_PRIORITY:
        if _RULES[status](facts):
            return status
    return DayStatus.NOT_MARKED
