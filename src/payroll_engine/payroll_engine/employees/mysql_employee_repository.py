from __future__ import annotations

from typing import Optional, Sequence

from ..core.constants import DEFAULT_NORMAL_WORKING_HOURS, DEFAULT_OVERTIME_MULTIPLIER
from ..core.enums import ApplicantType
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_decimal, db_cursor, fetchall, fetchone
from .model import EmployeeProfile
from .repository import EmployeeRepository

_COLUMNS = """
    employee_id, full_name, applicant_type, join_date, monthly_salary, hourly_rate,
    overtime_multiplier, normal_working_hours, position_id, manager_id, institution_id, is_active
"""


def _to_profile(r: dict) -> EmployeeProfile:
    return EmployeeProfile(
        employee_id=int(r["employee_id"]),
        name=r["full_name"],
        applicant_type=ApplicantType(r["applicant_type"]),
        join_date=r.get("join_date"),
        monthly_salary=as_decimal(r.get("monthly_salary")),
        hourly_rate=as_decimal(r.get("hourly_rate")),
        overtime_multiplier=as_decimal(r.get("overtime_multiplier"), str(DEFAULT_OVERTIME_MULTIPLIER)),
        normal_working_hours=int(r.get("normal_working_hours") or DEFAULT_NORMAL_WORKING_HOURS),
        position_id=r.get("position_id"),
        manager_id=r.get("manager_id"),
        institution_id=r.get("institution_id"),
        is_active=bool(r.get("is_active", True)),
    )


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[EmployeeProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
            row = fetchone(cur)
            return _to_profile(row) if row else None

    def list_active(self) -> Sequence[EmployeeProfile]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM employees WHERE is_active=1 ORDER BY employee_id")
            return [_to_profile(r) for r in fetchall(cur)]
