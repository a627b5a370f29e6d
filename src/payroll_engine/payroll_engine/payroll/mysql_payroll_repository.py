from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Sequence

from ..core.enums import OvertimeSource, OvertimeStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, dump_json, fetchall, fetchone, load_json
from .model import EmployeePayrollSummary, OvertimeRequest
from .repository import OvertimeRepository, PayrollSummaryRepository

_SUMMARY_COLUMNS = """
    employee_id, year, month, working_days, days_present, days_absent, days_leave,
    days_lop, days_not_marked, total_hours_worked, overtime_hours, monthly_salary,
    per_day_salary, gross_salary, total_deductions, overtime_pay, net_pay,
    attendance_percentage, overtime_pending_approval, warnings, computed_at
"""


def _row_to_summary(r: dict) -> EmployeePayrollSummary:
    return EmployeePayrollSummary(
        employee_id=int(r["employee_id"]),
        year=int(r["year"]),
        month=int(r["month"]),
        working_days=int(r["working_days"]),
        days_present=int(r["days_present"]),
        days_absent=int(r["days_absent"]),
        days_leave=int(r["days_leave"]),
        days_lop=int(r["days_lop"]),
        days_not_marked=int(r["days_not_marked"]),
        total_hours_worked=as_decimal(r.get("total_hours_worked")),
        overtime_hours=as_decimal(r.get("overtime_hours")),
        monthly_salary=as_decimal(r.get("monthly_salary")),
        per_day_salary=as_decimal(r.get("per_day_salary")),
        gross_salary=as_decimal(r.get("gross_salary")),
        total_deductions=as_decimal(r.get("total_deductions")),
        overtime_pay=as_decimal(r.get("overtime_pay")),
        net_pay=as_decimal(r.get("net_pay")),
        attendance_percentage=as_decimal(r.get("attendance_percentage")),
        overtime_pending_approval=int(r.get("overtime_pending_approval") or 0),
        warnings=tuple(load_json(r.get("warnings"))),
        computed_at=r.get("computed_at"),
    )


_OVERTIME_COLUMNS = """
    request_id, employee_id, day, overtime_hours, requested_hours, hourly_rate,
    overtime_multiplier, calculated_pay, status, source, attendance_id, created_at,
    decided_by, decided_at, rejection_reason
"""


def _row_to_overtime(r: dict) -> OvertimeRequest:
    return OvertimeRequest(
        request_id=int(r["request_id"]),
        employee_id=int(r["employee_id"]),
        day=r["day"],
        overtime_hours=as_decimal(r.get("overtime_hours")),
        requested_hours=as_decimal(r["requested_hours"]) if r.get("requested_hours") is not None else None,
        hourly_rate=as_decimal(r.get("hourly_rate")),
        overtime_multiplier=as_decimal(r.get("overtime_multiplier")),
        calculated_pay=as_decimal(r.get("calculated_pay")),
        status=OvertimeStatus(r["status"]),
        source=OvertimeSource(r["source"]),
        attendance_id=r.get("attendance_id"),
        created_at=r.get("created_at"),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLOvertimeRepository(OvertimeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, request: OvertimeRequest) -> int:
        r = request
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO overtime_requests(
                    employee_id, day, overtime_hours, requested_hours, hourly_rate,
                    overtime_multiplier, calculated_pay, status, source, attendance_id, created_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(r.employee_id),
                    r.day,
                    r.overtime_hours,
                    r.requested_hours,
                    r.hourly_rate,
                    r.overtime_multiplier,
                    r.calculated_pay,
                    r.status.value,
                    r.source.value,
                    r.attendance_id,
                    r.created_at,
                ),
            )
            return int(cur.lastrowid)

    def get(self, *, request_id: int) -> Optional[OvertimeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_OVERTIME_COLUMNS} FROM overtime_requests WHERE request_id=%s",
                (int(request_id),),
            )
            r = fetchone(cur)
            return _row_to_overtime(r) if r else None

    def list_for_employee(self, *, employee_id: int, start: date, end: date) -> Sequence[OvertimeRequest]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_OVERTIME_COLUMNS}
                FROM overtime_requests
                WHERE employee_id=%s AND day BETWEEN %s AND %s
                ORDER BY day, request_id
                """,
                (int(employee_id), start, end),
            )
            return [_row_to_overtime(r) for r in fetchall(cur)]

    def update_status(
        self,
        *,
        request_id: int,
        status: OvertimeStatus,
        decided_by: int,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE overtime_requests
                SET status=%s, decided_by=%s, decided_at=%s, rejection_reason=%s
                WHERE request_id=%s AND status=%s
                """,
                (
                    status.value,
                    int(decided_by),
                    decided_at,
                    rejection_reason,
                    int(request_id),
                    OvertimeStatus.PENDING.value,
                ),
            )
            return cur.rowcount > 0


class MySQLPayrollSummaryRepository(PayrollSummaryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def save(self, summary: EmployeePayrollSummary) -> None:
        s = summary
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO employee_payroll_summaries({_SUMMARY_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    working_days=VALUES(working_days),
                    days_present=VALUES(days_present),
                    days_absent=VALUES(days_absent),
                    days_leave=VALUES(days_leave),
                    days_lop=VALUES(days_lop),
                    days_not_marked=VALUES(days_not_marked),
                    total_hours_worked=VALUES(total_hours_worked),
                    overtime_hours=VALUES(overtime_hours),
                    monthly_salary=VALUES(monthly_salary),
                    per_day_salary=VALUES(per_day_salary),
                    gross_salary=VALUES(gross_salary),
                    total_deductions=VALUES(total_deductions),
                    overtime_pay=VALUES(overtime_pay),
                    net_pay=VALUES(net_pay),
                    attendance_percentage=VALUES(attendance_percentage),
                    overtime_pending_approval=VALUES(overtime_pending_approval),
                    warnings=VALUES(warnings),
                    computed_at=VALUES(computed_at)
                """,
                (
                    int(s.employee_id),
                    int(s.year),
                    int(s.month),
                    s.working_days,
                    s.days_present,
                    s.days_absent,
                    s.days_leave,
                    s.days_lop,
                    s.days_not_marked,
                    s.total_hours_worked,
                    s.overtime_hours,
                    s.monthly_salary,
                    s.per_day_salary,
                    s.gross_salary,
                    s.total_deductions,
                    s.overtime_pay,
                    s.net_pay,
                    s.attendance_percentage,
                    s.overtime_pending_approval,
                    dump_json(list(s.warnings)),
                    s.computed_at,
                ),
            )

    def get(self, *, employee_id: int, year: int, month: int) -> Optional[EmployeePayrollSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS}
                FROM employee_payroll_summaries
                WHERE employee_id=%s AND year=%s AND month=%s
                """,
                (int(employee_id), int(year), int(month)),
            )
            r = fetchone(cur)
            return _row_to_summary(r) if r else None

    def list_for_month(self, *, year: int, month: int) -> Sequence[EmployeePayrollSummary]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_SUMMARY_COLUMNS}
                FROM employee_payroll_summaries
                WHERE year=%s AND month=%s
                ORDER BY employee_id
                """,
                (int(year), int(month)),
            )
            return [_row_to_summary(r) for r in fetchall(cur)]
