from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

import pytest

from src.payroll_engine.payroll_engine.attendance.model import AttendanceRecord
from src.payroll_engine.payroll_engine.attendance.service import AttendanceService, overtime_pay
from src.payroll_engine.payroll_engine.calendars.resolver import CalendarResolver
from src.payroll_engine.payroll_engine.core.enums import (
    ApplicantType,
    AttendanceStatus,
    OvertimeSource,
    OvertimeStatus,
)
from src.payroll_engine.payroll_engine.core.exceptions import (
    ConcurrentUpdateError,
    GpsNotConfiguredError,
    NotFoundError,
    OutsideGeofenceError,
    ValidationError,
)
from src.payroll_engine.payroll_engine.employees.model import EmployeeProfile
from src.payroll_engine.payroll_engine.geofence.model import GeoPoint, InstitutionGeofence
from src.payroll_engine.payroll_engine.geofence.validator import GeofenceValidator

CAMPUS = GeoPoint(latitude=12.9715987, longitude=77.5945627)
NEARBY = GeoPoint(latitude=12.9725, longitude=77.5945627)
FAR = GeoPoint(latitude=13.0, longitude=77.5945627)


class InMemoryEmployees:
    def __init__(self, *employees):
        self.by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id) -> Optional[EmployeeProfile]:
        return self.by_id.get(int(employee_id))

    def list_active(self):
        return list(self.by_id.values())


class InMemoryGeofences:
    def __init__(self, *fences):
        self.by_id = {f.institution_id: f for f in fences}

    def get_for_institution(self, institution_id):
        return self.by_id.get(int(institution_id))


class InMemoryAttendance:
    def __init__(self):
        self.by_key: dict[tuple[int, date], AttendanceRecord] = {}
        self._id = 0

    def get_recent_for_employee(self, employee_id, limit):
        items = sorted((r for r in self.by_key.values() if r.employee_id == employee_id), key=lambda r: r.work_date, reverse=True)
        return items[:limit]

    def get_for_employee_and_date(self, employee_id, work_date):
        return self.by_key.get((employee_id, work_date))

    def list_for_employee(self, *, employee_id, start, end):
        return [r for (e, d), r in self.by_key.items() if e == employee_id and start <= d <= end]

    def upsert_checkin(self, *, employee_id, work_date, check_in_time, geofence):
        existing = self.by_key.get((employee_id, work_date))
        if existing is not None and existing.is_locked:
            return None
        attendance_id = existing.attendance_id if existing else self._next_id()
        self.by_key[(employee_id, work_date)] = AttendanceRecord(
            attendance_id=attendance_id,
            employee_id=employee_id,
            work_date=work_date,
            status=AttendanceStatus.CHECKED_IN,
            check_in_time=check_in_time,
            check_in_location=geofence.location,
            distance_meters=geofence.distance_meters,
            location_validated=geofence.validated,
        )
        return attendance_id

    def update_checkout(self, *, attendance_id, check_out_time, geofence, hours_worked, overtime_hours):
        for key, r in self.by_key.items():
            if r.attendance_id == attendance_id and r.status == AttendanceStatus.CHECKED_IN and not r.is_locked:
                self.by_key[key] = replace(
                    r,
                    status=AttendanceStatus.CHECKED_OUT,
                    check_out_time=check_out_time,
                    check_out_validated=geofence.validated,
                    hours_worked=hours_worked,
                    overtime_hours=overtime_hours,
                    is_locked=True,
                )
                return True
        return False

    def _next_id(self):
        self._id += 1
        return self._id


class InMemoryOvertime:
    def __init__(self):
        self.items = []

    def create(self, request):
        self.items.append(replace(request, request_id=len(self.items) + 1))
        return len(self.items)

    def list_for_employee(self, *, employee_id, start, end):
        return [r for r in self.items if r.employee_id == employee_id and start <= r.day <= end]


class NoCalendars:
    def list_entries(self, *, ref, start, end):
        return []


class NoLeaves:
    def list_for_applicant(self, *, applicant_id, statuses=None):
        return []


def _officer(**kw):
    base = dict(
        employee_id=1,
        name="Officer",
        applicant_type=ApplicantType.OFFICER,
        join_date=date(2024, 1, 1),
        monthly_salary=Decimal("30000"),
        hourly_rate=Decimal("200"),
        institution_id=7,
    )
    base.update(kw)
    return EmployeeProfile(**base)


def _service(*, employee=None, fences=None, enforce=False):
    attendance = InMemoryAttendance()
    overtime = InMemoryOvertime()
    fences = fences if fences is not None else [InstitutionGeofence(institution_id=7, location=CAMPUS, radius_meters=1500)]
    service = AttendanceService(
        attendance,
        InMemoryEmployees(employee or _officer()),
        InMemoryGeofences(*fences),
        overtime,
        CalendarResolver(NoCalendars()),
        NoLeaves(),
        validator=GeofenceValidator(enforce=enforce),
    )
    return service, attendance, overtime


def test_check_in_inside_geofence(fixed_now):
    service, attendance, _ = _service()

    result = service.check_in(employee_id=1, location=NEARBY, now=fixed_now)

    assert result.ok
    assert result.value.location_validated is True
    assert result.warnings == ()
    assert attendance.get_for_employee_and_date(1, fixed_now.date()).status == AttendanceStatus.CHECKED_IN


def test_check_in_outside_geofence_is_flagged(fixed_now):
    service, _, _ = _service()

    result = service.check_in(employee_id=1, location=FAR, now=fixed_now)

    assert result.ok
    assert result.value.location_validated is False
    assert "outside" in result.warnings[0]


def test_check_in_outside_geofence_refused_when_enforced(fixed_now):
    service, attendance, _ = _service(enforce=True)

    result = service.check_in(employee_id=1, location=FAR, now=fixed_now)

    assert isinstance(result.error, OutsideGeofenceError)
    assert attendance.by_key == {}


def test_skip_gps_records_not_applicable(fixed_now):
    service, attendance, _ = _service()

    result = service.check_in(employee_id=1, location=FAR, skip_gps=True, now=fixed_now)

    assert result.ok
    stored = attendance.get_for_employee_and_date(1, fixed_now.date())
    assert stored.location_validated is None
    assert stored.location_validated is not False
    assert stored.distance_meters is None


def test_gps_not_configured_is_distinct_from_outside(fixed_now):
    service, attendance, _ = _service(fences=[InstitutionGeofence(institution_id=7, location=None, radius_meters=1500)])

    result = service.check_in(employee_id=1, location=NEARBY, now=fixed_now)

    assert isinstance(result.error, GpsNotConfiguredError)
    assert not isinstance(result.error, OutsideGeofenceError)
    assert attendance.by_key == {}


def test_staff_without_institution_skips_gps(fixed_now):
    staff = _officer(applicant_type=ApplicantType.STAFF, institution_id=None)
    service, _, _ = _service(employee=staff)

    result = service.check_in(employee_id=1, now=fixed_now)

    assert result.ok
    assert result.value.location_validated is None


def test_double_check_in_refused(fixed_now):
    service, _, _ = _service()
    service.check_in(employee_id=1, location=NEARBY, now=fixed_now)

    result = service.check_in(employee_id=1, location=NEARBY, now=fixed_now)

    assert isinstance(result.error, ValidationError)


def test_unknown_employee(fixed_now):
    service, _, _ = _service()
    assert isinstance(service.check_in(employee_id=99, now=fixed_now).error, NotFoundError)


def test_check_out_computes_hours_and_requests_overtime(fixed_now):
    service, attendance, overtime = _service()
    check_in = fixed_now.replace(hour=8, minute=0)
    service.check_in(employee_id=1, location=NEARBY, now=check_in)

    result = service.check_out(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=18, minute=30, second=45))

    assert result.ok
    record = result.value
    assert record.hours_worked == Decimal("10.50")
    assert record.overtime_hours == Decimal("2.50")
    assert record.is_locked

    assert len(overtime.items) == 1
    req = overtime.items[0]
    assert req.status == OvertimeStatus.PENDING
    assert req.source == OvertimeSource.AUTO_GENERATED
    assert req.attendance_id == record.attendance_id
    # 2.5h * 200 * 1.5
    assert req.calculated_pay == Decimal("750.00")


def test_check_out_without_overtime_creates_no_request(fixed_now):
    service, _, overtime = _service()
    service.check_in(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=9))

    result = service.check_out(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=16))

    assert result.value.overtime_hours == Decimal("0.00")
    assert overtime.items == []


def test_second_check_out_refused(fixed_now):
    service, _, _ = _service()
    service.check_in(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=9))
    service.check_out(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=17))

    result = service.check_out(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=18))

    assert isinstance(result.error, ValidationError)


def test_check_in_after_check_out_never_reopens_record(fixed_now):
    service, attendance, _ = _service()
    service.check_in(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=9))
    service.check_out(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=17))
    # A check-in racing the check-out read the day before it was locked.
    attendance.get_for_employee_and_date = lambda employee_id, work_date: None

    result = service.check_in(employee_id=1, location=NEARBY, now=fixed_now.replace(hour=17, minute=5))

    assert isinstance(result.error, ConcurrentUpdateError)
    record = attendance.by_key[(1, fixed_now.date())]
    assert record.status == AttendanceStatus.CHECKED_OUT
    assert record.check_in_time == fixed_now.replace(hour=9)
    assert record.is_locked


def test_check_out_without_check_in_refused(fixed_now):
    service, _, _ = _service()
    assert isinstance(service.check_out(employee_id=1, location=NEARBY, now=fixed_now).error, ValidationError)


@pytest.mark.parametrize(
    "hours,rate,multiplier,expected",
    [
        (Decimal("1.5"), Decimal("180"), Decimal("1.5"), Decimal("405.00")),
        (Decimal("0.33"), Decimal("100"), Decimal("1.5"), Decimal("49.50")),
        (Decimal("2"), Decimal("0"), Decimal("2"), Decimal("0.00")),
    ],
)
def test_overtime_pay(hours, rate, multiplier, expected):
    assert overtime_pay(hours, rate, multiplier) == expected


def test_monthly_aggregate_uses_stored_records(fixed_now):
    service, _, _ = _service()
    service.check_in(employee_id=1, location=NEARBY, now=datetime(2025, 3, 10, 9, 0))
    service.check_out(employee_id=1, location=NEARBY, now=datetime(2025, 3, 10, 18, 0))

    agg = service.monthly_aggregate(employee_id=1, year=2025, month=3, today=fixed_now.date())

    assert agg.present_days == 1
    assert agg.total_hours_worked == Decimal("9.00")
    assert agg.overtime_hours == Decimal("1.00")
