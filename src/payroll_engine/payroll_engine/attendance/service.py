from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Callable, Optional, Sequence

from ..calendars.model import CalendarRef
from ..calendars.resolver import CalendarResolver
from ..common.datetime_utils import month_bounds, now_local
from ..common.validators import require_month
from ..core.constants import DEFAULT_HISTORY_LIMIT, MONEY_QUANTUM
from ..core.enums import AttendanceStatus, LeaveStatus, OvertimeSource, OvertimeStatus
from ..core.exceptions import ConcurrentUpdateError, DomainError, GpsNotConfiguredError, NotFoundError, ValidationError
from ..core.result import Result
from ..employees.model import EmployeeProfile
from ..employees.repository import EmployeeRepository
from ..geofence.model import GeofenceCheck, GeoPoint
from ..geofence.repository import GeofenceRepository
from ..geofence.validator import GeofenceValidator
from ..leave.repository import LeaveRepository
from ..payroll.model import OvertimeRequest
from ..payroll.repository import OvertimeRepository
from .aggregator import aggregate, hours_between, overtime_beyond
from .model import AttendanceAggregate, AttendanceRecord
from .repository import AttendanceRepository

logger = logging.getLogger(__name__)


def overtime_pay(hours: Decimal, hourly_rate: Decimal, multiplier: Decimal) -> Decimal:
    return (Decimal(hours) * Decimal(hourly_rate) * Decimal(multiplier)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


class AttendanceService:
    def __init__(
        self,
        attendance: AttendanceRepository,
        employees: EmployeeRepository,
        geofences: GeofenceRepository,
        overtime: OvertimeRepository,
        calendar: CalendarResolver,
        leaves: LeaveRepository,
        *,
        validator: Optional[GeofenceValidator] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._attendance = attendance
        self._employees = employees
        self._geofences = geofences
        self._overtime = overtime
        self._calendar = calendar
        self._leaves = leaves
        self._validator = validator or GeofenceValidator()
        self._clock = clock

    def _require_employee(self, employee_id: int) -> EmployeeProfile:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _check_location(self, employee: EmployeeProfile, location: Optional[GeoPoint], skip_gps: bool) -> GeofenceCheck:
        if skip_gps or employee.institution_id is None:
            return GeofenceCheck(distance_meters=None, validated=None, location=location)

        institution = self._geofences.get_for_institution(employee.institution_id)
        if institution is None:
            raise GpsNotConfiguredError("Institution GPS coordinates are not configured")
        return self._validator.check(institution=institution, location=location, skip_gps=False)

    @staticmethod
    def _location_warnings(check: GeofenceCheck) -> tuple[str, ...]:
        if check.validated is False:
            return (f"Location is {check.distance_meters}m from the institution, outside the allowed radius",)
        return ()

    # -------- Check-in / check-out --------
    def check_in(
        self,
        *,
        employee_id: int,
        location: Optional[GeoPoint] = None,
        skip_gps: bool = False,
        now: Optional[datetime] = None,
    ) -> Result[AttendanceRecord]:
        try:
            return self._check_in(int(employee_id), location, bool(skip_gps), now or self._clock())
        except DomainError as e:
            logger.info("check-in refused employee=%s: %s", employee_id, e)
            return Result.failure(e)

    def _check_in(
        self, employee_id: int, location: Optional[GeoPoint], skip_gps: bool, now: datetime
    ) -> Result[AttendanceRecord]:
        employee = self._require_employee(employee_id)
        today = now.date()

        existing = self._attendance.get_for_employee_and_date(employee_id, today)
        if existing and existing.is_present:
            raise ValidationError("Already checked in today")

        check = self._check_location(employee, location, skip_gps)
        attendance_id = self._attendance.upsert_checkin(
            employee_id=employee_id,
            work_date=today,
            check_in_time=now,
            geofence=check,
        )
        if attendance_id is None:
            raise ConcurrentUpdateError("Attendance for today is already checked out")
        record = AttendanceRecord(
            attendance_id=int(attendance_id),
            employee_id=employee_id,
            work_date=today,
            status=AttendanceStatus.CHECKED_IN,
            check_in_time=now,
            check_in_location=check.location,
            distance_meters=check.distance_meters,
            location_validated=check.validated,
        )
        return Result.success(record, warnings=self._location_warnings(check))

    def check_out(
        self,
        *,
        employee_id: int,
        location: Optional[GeoPoint] = None,
        skip_gps: bool = False,
        now: Optional[datetime] = None,
    ) -> Result[AttendanceRecord]:
        try:
            return self._check_out(int(employee_id), location, bool(skip_gps), now or self._clock())
        except DomainError as e:
            logger.info("check-out refused employee=%s: %s", employee_id, e)
            return Result.failure(e)

    def _check_out(
        self, employee_id: int, location: Optional[GeoPoint], skip_gps: bool, now: datetime
    ) -> Result[AttendanceRecord]:
        employee = self._require_employee(employee_id)
        record = self._attendance.get_for_employee_and_date(employee_id, now.date())
        if not record or record.check_in_time is None:
            raise ValidationError("No check-in found for today")
        if record.is_locked or record.status != AttendanceStatus.CHECKED_IN:
            raise ValidationError("Already checked out today")
        if now < record.check_in_time:
            raise ValidationError("Check-out cannot be earlier than check-in")

        check = self._check_location(employee, location, skip_gps)
        hours = hours_between(record.check_in_time, now)
        overtime = overtime_beyond(hours, employee.normal_working_hours)

        ok = self._attendance.update_checkout(
            attendance_id=record.attendance_id,
            check_out_time=now,
            geofence=check,
            hours_worked=hours,
            overtime_hours=overtime,
        )
        if not ok:
            raise ConcurrentUpdateError("Attendance record was already checked out")

        updated = replace(
            record,
            status=AttendanceStatus.CHECKED_OUT,
            check_out_time=now,
            check_out_location=check.location,
            check_out_distance_meters=check.distance_meters,
            check_out_validated=check.validated,
            hours_worked=hours,
            overtime_hours=overtime,
            is_locked=True,
        )

        warnings = list(self._location_warnings(check))
        if overtime > 0:
            self._request_overtime(employee, updated, overtime, now)
            warnings.append(f"{overtime} overtime hour(s) submitted for approval")
        return Result.success(updated, warnings=tuple(warnings))

    def _request_overtime(self, employee: EmployeeProfile, record: AttendanceRecord, hours: Decimal, now: datetime) -> int:
        request = OvertimeRequest(
            request_id=0,
            employee_id=employee.employee_id,
            day=record.work_date,
            overtime_hours=hours,
            hourly_rate=employee.hourly_rate,
            overtime_multiplier=employee.overtime_multiplier,
            calculated_pay=overtime_pay(hours, employee.hourly_rate, employee.overtime_multiplier),
            status=OvertimeStatus.PENDING,
            source=OvertimeSource.AUTO_GENERATED,
            attendance_id=record.attendance_id,
            requested_hours=hours,
            created_at=now,
        )
        request_id = self._overtime.create(request)
        logger.info(
            "overtime request=%s employee=%s day=%s hours=%s pay=%s",
            request_id,
            employee.employee_id,
            record.work_date.isoformat(),
            hours,
            request.calculated_pay,
        )
        return request_id

    # -------- Queries --------
    def get_history(self, employee_id: int, *, limit: int = DEFAULT_HISTORY_LIMIT) -> Sequence[AttendanceRecord]:
        return self._attendance.get_recent_for_employee(int(employee_id), int(limit))

    def get_today_record(self, employee_id: int, today: date) -> Optional[AttendanceRecord]:
        return self._attendance.get_for_employee_and_date(int(employee_id), today)

    def monthly_aggregate(
        self,
        *,
        employee_id: int,
        year: int,
        month: int,
        today: Optional[date] = None,
    ) -> AttendanceAggregate:
        year, month = require_month(year, month)
        employee = self._require_employee(employee_id)
        return self.aggregate_for(employee, year, month, today=today or self._clock().date())

    def aggregate_for(self, employee: EmployeeProfile, year: int, month: int, *, today: date) -> AttendanceAggregate:
        start, end = month_bounds(year, month)
        ref = CalendarRef.for_employee(employee)

        approved = [
            a
            for a in self._leaves.list_for_applicant(applicant_id=employee.employee_id, statuses=[LeaveStatus.APPROVED])
            if a.overlaps(start, end)
        ]
        # Paid/LOP split depends on working days across the whole range.
        range_start = min([start] + [a.start_date for a in approved])
        range_end = max([end] + [a.end_date for a in approved])
        day_types = self._calendar.day_types_in_range(ref, range_start, range_end)

        return aggregate(
            employee_id=employee.employee_id,
            year=year,
            month=month,
            records=self._attendance.list_for_employee(employee_id=employee.employee_id, start=start, end=end),
            day_types=day_types,
            approved_leaves=approved,
            today=today,
            join_date=employee.join_date,
            normal_working_hours=employee.normal_working_hours,
        )
