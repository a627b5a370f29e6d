from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from ..core.constants import DEFAULT_NORMAL_WORKING_HOURS, DEFAULT_OVERTIME_MULTIPLIER
from ..core.enums import ApplicantType


@dataclass(frozen=True)
class EmployeeProfile:
    """Domain entity: the payroll-relevant slice of an employee profile.

    Note: plain data object, no DB access code here.
    """

    employee_id: int
    name: str
    applicant_type: ApplicantType
    join_date: Optional[date]
    monthly_salary: Decimal
    hourly_rate: Decimal = Decimal("0")
    overtime_multiplier: Decimal = DEFAULT_OVERTIME_MULTIPLIER
    normal_working_hours: int = DEFAULT_NORMAL_WORKING_HOURS
    position_id: Optional[int] = None
    manager_id: Optional[int] = None
    institution_id: Optional[int] = None
    is_active: bool = True

    @property
    def is_officer(self) -> bool:
        return self.applicant_type == ApplicantType.OFFICER
