from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import AttendanceStatus, DayStatus
from ..geofence.model import GeoPoint


@dataclass(frozen=True)
class AttendanceRecord:
    """Domain entity: one employee's attendance for one date.

    location_validated is None when GPS validation did not apply, False when
    the check-in was recorded outside the institution radius.
    """

    attendance_id: int
    employee_id: int
    work_date: date
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    check_in_location: Optional[GeoPoint] = None
    check_out_location: Optional[GeoPoint] = None
    distance_meters: Optional[int] = None
    location_validated: Optional[bool] = None
    check_out_distance_meters: Optional[int] = None
    check_out_validated: Optional[bool] = None
    hours_worked: Optional[Decimal] = None
    overtime_hours: Optional[Decimal] = None
    is_locked: bool = False

    @property
    def is_present(self) -> bool:
        return self.status in {AttendanceStatus.CHECKED_IN, AttendanceStatus.CHECKED_OUT}


@dataclass(frozen=True)
class DayStatusEntry:
    day: date
    status: DayStatus
    hours_worked: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
    application_id: Optional[int] = None


@dataclass(frozen=True)
class AttendanceAggregate:
    """Read-model for one employee-month, consumed by payroll."""

    employee_id: int
    year: int
    month: int
    daily_statuses: tuple[DayStatusEntry, ...] = field(default_factory=tuple)
    working_days: int = 0
    present_days: int = 0
    absent_days: int = 0
    leave_days: int = 0
    lop_days: int = 0
    not_marked_days: int = 0
    total_hours_worked: Decimal = Decimal("0")
    overtime_hours: Decimal = Decimal("0")
