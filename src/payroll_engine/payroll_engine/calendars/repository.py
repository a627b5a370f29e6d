from __future__ import annotations

from datetime import date
from typing import Optional, Protocol, Sequence

from ..core.enums import DayType
from .model import CalendarDayTypeEntry, CalendarRef


class CalendarRepository(Protocol):
    def list_entries(self, *, ref: CalendarRef, start: date, end: date) -> Sequence[CalendarDayTypeEntry]:
        """Explicit entries for the calendar within [start, end]."""

        raise NotImplementedError

    def upsert(self, *, ref: CalendarRef, day: date, day_type: DayType, description: Optional[str] = None) -> None:
        raise NotImplementedError

    def delete(self, *, ref: CalendarRef, day: date) -> bool:
        raise NotImplementedError
