from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ..core.enums import CalendarScope, DayType
from ..employees.model import EmployeeProfile


@dataclass(frozen=True)
class CalendarRef:
    """Which calendar governs a date computation.

    Passed explicitly through every range computation; there is no ambient
    "current user" lookup.
    """

    scope: CalendarScope
    scope_id: Optional[int] = None

    @classmethod
    def company(cls) -> "CalendarRef":
        return cls(scope=CalendarScope.COMPANY, scope_id=None)

    @classmethod
    def institution(cls, institution_id: int) -> "CalendarRef":
        return cls(scope=CalendarScope.INSTITUTION, scope_id=int(institution_id))

    @classmethod
    def for_employee(cls, employee: EmployeeProfile) -> "CalendarRef":
        if employee.is_officer and employee.institution_id:
            return cls.institution(employee.institution_id)
        return cls.company()


@dataclass(frozen=True)
class CalendarDayTypeEntry:
    """Explicit classification; at most one per (scope, scope_id, date)."""

    scope: CalendarScope
    scope_id: Optional[int]
    day: date
    day_type: DayType
    description: Optional[str] = None


@dataclass(frozen=True)
class NonWorkingDays:
    weekends: list[date] = field(default_factory=list)
    holidays: list[date] = field(default_factory=list)

    def as_set(self) -> set[date]:
        return set(self.weekends) | set(self.holidays)
