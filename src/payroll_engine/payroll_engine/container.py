from __future__ import annotations

from dataclasses import dataclass

from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.service import AttendanceService
from .calendars.mysql_calendar_repository import MySQLCalendarRepository
from .calendars.resolver import CalendarResolver
from .core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from .database.connection import DBConfig, DatabaseConnection
from .employees.mysql_employee_repository import MySQLEmployeeRepository
from .geofence.mysql_geofence_repository import MySQLGeofenceRepository
from .geofence.validator import GeofenceValidator
from .leave.ledger import LeaveLedger
from .leave.mysql_leave_repository import (
    MySQLApprovalHierarchyRepository,
    MySQLLeaveRepository,
    MySQLTimetableRepository,
)
from .leave.notifications import LoggingNotificationSink
from .leave.service import LeaveWorkflowService
from .payroll.mysql_payroll_repository import MySQLOvertimeRepository, MySQLPayrollSummaryRepository
from .payroll.service import PayrollService


@dataclass(frozen=True)
class Container:
    conn: DatabaseConnection

    calendar_resolver: CalendarResolver
    attendance_service: AttendanceService
    leave_service: LeaveWorkflowService
    payroll_service: PayrollService


def build_container(
    *,
    db_config: dict,
    enforce_geofence: bool = False,
    default_radius_meters: int = DEFAULT_GEOFENCE_RADIUS_METERS,
    payroll_max_workers: int = 4,
) -> Container:
    conn = DatabaseConnection.get_instance(DBConfig.from_dict(db_config))

    employees_repo = MySQLEmployeeRepository(conn)
    calendar_repo = MySQLCalendarRepository(conn)
    geofence_repo = MySQLGeofenceRepository(conn, default_radius_meters=default_radius_meters)
    attendance_repo = MySQLAttendanceRepository(conn)
    leave_repo = MySQLLeaveRepository(conn)
    hierarchy_repo = MySQLApprovalHierarchyRepository(conn)
    timetable_repo = MySQLTimetableRepository(conn)
    overtime_repo = MySQLOvertimeRepository(conn)
    summary_repo = MySQLPayrollSummaryRepository(conn)

    calendar_resolver = CalendarResolver(calendar_repo)

    attendance_service = AttendanceService(
        attendance_repo,
        employees_repo,
        geofence_repo,
        overtime_repo,
        calendar_resolver,
        leave_repo,
        validator=GeofenceValidator(enforce=enforce_geofence),
    )
    leave_service = LeaveWorkflowService(
        leave_repo,
        hierarchy_repo,
        timetable_repo,
        employees_repo,
        calendar_resolver,
        ledger=LeaveLedger(),
        notifications=LoggingNotificationSink(),
    )
    payroll_service = PayrollService(
        employees_repo,
        overtime_repo,
        summary_repo,
        attendance_service,
        max_workers=payroll_max_workers,
    )

    return Container(
        conn=conn,
        calendar_resolver=calendar_resolver,
        attendance_service=attendance_service,
        leave_service=leave_service,
        payroll_service=payroll_service,
    )
