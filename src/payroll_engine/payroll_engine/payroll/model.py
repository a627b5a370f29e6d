from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..core.enums import OvertimeSource, OvertimeStatus


@dataclass(frozen=True)
class OvertimeRequest:
    request_id: int
    employee_id: int
    day: date
    overtime_hours: Decimal
    hourly_rate: Decimal
    overtime_multiplier: Decimal
    calculated_pay: Decimal
    status: OvertimeStatus = OvertimeStatus.PENDING
    source: OvertimeSource = OvertimeSource.AUTO_GENERATED
    attendance_id: Optional[int] = None
    requested_hours: Optional[Decimal] = None
    created_at: Optional[datetime] = None
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class EmployeePayrollSummary:
    """Derived monthly payroll figure. A cache entry, never a source of truth."""

    employee_id: int
    year: int
    month: int
    working_days: int
    days_present: int
    days_absent: int
    days_leave: int
    days_lop: int
    days_not_marked: int
    total_hours_worked: Decimal
    overtime_hours: Decimal
    monthly_salary: Decimal
    per_day_salary: Decimal
    gross_salary: Decimal
    total_deductions: Decimal
    overtime_pay: Decimal
    net_pay: Decimal
    attendance_percentage: Decimal
    overtime_pending_approval: int = 0
    warnings: tuple[str, ...] = field(default_factory=tuple)
    # Audit stamp only; two runs over the same inputs compare equal.
    computed_at: Optional[datetime] = field(default=None, compare=False)
