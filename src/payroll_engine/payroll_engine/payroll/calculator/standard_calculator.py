from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Sequence

from ...attendance.model import AttendanceAggregate
from ...common.datetime_utils import days_in_month, month_bounds
from ...core.constants import MONEY_QUANTUM, STANDARD_DAYS_PER_MONTH
from ...core.enums import OvertimeStatus
from ...employees.model import EmployeeProfile
from ..model import EmployeePayrollSummary, OvertimeRequest
from .base import PayrollCalculator

logger = logging.getLogger(__name__)


def money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def prorated_gross(monthly_salary: Decimal, join_date: Optional[date], year: int, month: int) -> Decimal:
    """Full salary, or the share from the join date to month end."""
    start, end = month_bounds(year, month)
    if join_date is None or join_date <= start:
        return money(monthly_salary)
    if join_date > end:
        return money(Decimal("0"))
    days_from_join = (end - join_date).days + 1
    return money(Decimal(days_from_join) / Decimal(days_in_month(year, month)) * Decimal(monthly_salary))


class StandardPayrollCalculator(PayrollCalculator):
    """Standard rule:

        per_day    = monthly / STANDARD_DAYS_PER_MONTH
        deductions = (not_marked + lop) * per_day
        net        = gross - deductions + approved overtime pay

    Paid leave is never deducted. Each money term is rounded to 0.01 before
    net is taken, so net equals the formula on the stored figures exactly.
    """

    def __init__(self, *, standard_days_per_month: int = STANDARD_DAYS_PER_MONTH):
        self._standard_days = int(standard_days_per_month)

    def compute(
        self,
        *,
        employee: EmployeeProfile,
        year: int,
        month: int,
        aggregate: AttendanceAggregate,
        overtime_requests: Sequence[OvertimeRequest],
        computed_at: Optional[datetime] = None,
    ) -> EmployeePayrollSummary:
        start, end = month_bounds(year, month)
        dim = days_in_month(year, month)
        warnings: list[str] = []

        monthly = Decimal(employee.monthly_salary)
        per_day_exact = monthly / Decimal(self._standard_days)
        # LOP dates that fall inside this month, as classified day by day.
        lop_days = aggregate.lop_days
        not_marked = aggregate.not_marked_days

        gross = prorated_gross(monthly, employee.join_date, year, month)
        deductions = money(Decimal(not_marked + lop_days) * per_day_exact)

        in_month = [r for r in overtime_requests if start <= r.day <= end]
        overtime = money(sum((Decimal(r.calculated_pay) for r in in_month if r.status == OvertimeStatus.APPROVED), Decimal("0")))
        pending = sum(1 for r in in_month if r.status == OvertimeStatus.PENDING)

        leave_days = aggregate.leave_days + aggregate.lop_days
        percentage = money(Decimal((dim - (leave_days + not_marked)) * 100) / Decimal(dim))
        if percentage < 0 or percentage > 100:
            msg = f"attendance percentage {percentage} outside 0..100"
            warnings.append(msg)
            logger.warning("payroll data integrity employee=%s month=%04d-%02d: %s", employee.employee_id, year, month, msg)

        return EmployeePayrollSummary(
            employee_id=employee.employee_id,
            year=year,
            month=month,
            working_days=aggregate.working_days,
            days_present=aggregate.present_days,
            days_absent=aggregate.absent_days,
            days_leave=leave_days,
            days_lop=lop_days,
            days_not_marked=not_marked,
            total_hours_worked=aggregate.total_hours_worked,
            overtime_hours=aggregate.overtime_hours,
            monthly_salary=money(monthly),
            per_day_salary=money(per_day_exact),
            gross_salary=gross,
            total_deductions=deductions,
            overtime_pay=overtime,
            net_pay=gross - deductions + overtime,
            attendance_percentage=percentage,
            overtime_pending_approval=pending,
            warnings=tuple(warnings),
            computed_at=computed_at,
        )
