from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Protocol, Sequence

from ..geofence.model import GeofenceCheck
from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    def get_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def list_for_employee(self, *, employee_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def upsert_checkin(
        self,
        *,
        employee_id: int,
        work_date: date,
        check_in_time: datetime,
        geofence: GeofenceCheck,
    ) -> Optional[int]:
        """One record per (employee, date); returns attendance_id.

        Returns None, leaving the row untouched, when the record for that
        date is already locked by a check-out.
        """

        raise NotImplementedError

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        geofence: GeofenceCheck,
        hours_worked: Decimal,
        overtime_hours: Decimal,
    ) -> bool:
        """Applies only while the record is still checked in and unlocked."""

        raise NotImplementedError
