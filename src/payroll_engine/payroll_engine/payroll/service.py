from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..attendance.service import AttendanceService
from ..common.datetime_utils import month_bounds, now_local
from ..common.validators import require_month, require_non_empty
from ..core.enums import OvertimeStatus
from ..core.exceptions import AuthorizationError, ConcurrentUpdateError, DomainError, NotFoundError, ValidationError
from ..core.result import Result
from ..employees.model import EmployeeProfile
from ..employees.repository import EmployeeRepository
from .calculator.base import PayrollCalculator
from .calculator.standard_calculator import StandardPayrollCalculator
from .model import EmployeePayrollSummary, OvertimeRequest
from .repository import OvertimeRepository, PayrollSummaryRepository

logger = logging.getLogger(__name__)


class _KeyedLocks:
    """One lock per (employee, year, month), created on demand."""

    def __init__(self):
        self._guard = threading.Lock()
        self._locks: dict[tuple[int, int, int], threading.Lock] = {}

    def get(self, key: tuple[int, int, int]) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock


class PayrollService:
    """Explicit recomputation entry point for employee-month payroll.

    Every run re-derives the summary from raw inputs and overwrites the
    cached row, so re-running after a correction or backfill is safe.
    """

    def __init__(
        self,
        employees: EmployeeRepository,
        overtime: OvertimeRepository,
        summaries: PayrollSummaryRepository,
        attendance_service: AttendanceService,
        *,
        calculator: Optional[PayrollCalculator] = None,
        max_workers: int = 4,
        clock: Callable[[], datetime] = now_local,
    ):
        self._employees = employees
        self._overtime = overtime
        self._summaries = summaries
        self._attendance = attendance_service
        self._calculator = calculator or StandardPayrollCalculator()
        self._max_workers = max(1, int(max_workers))
        self._clock = clock
        self._locks = _KeyedLocks()

    def compute(self, employee: EmployeeProfile, year: int, month: int, *, today: Optional[date] = None) -> EmployeePayrollSummary:
        """Pure computation over repository reads; nothing is written."""
        now = self._clock()
        aggregate = self._attendance.aggregate_for(employee, year, month, today=today or now.date())

        start, end = month_bounds(year, month)
        overtime = self._overtime.list_for_employee(employee_id=employee.employee_id, start=start, end=end)

        return self._calculator.compute(
            employee=employee,
            year=year,
            month=month,
            aggregate=aggregate,
            overtime_requests=overtime,
            computed_at=now,
        )

    def recompute(self, *, employee_id: int, year: int, month: int, today: Optional[date] = None) -> EmployeePayrollSummary:
        year, month = require_month(year, month)
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return self._recompute(employee, year, month, today)

    def _recompute(self, employee: EmployeeProfile, year: int, month: int, today: Optional[date]) -> EmployeePayrollSummary:
        with self._locks.get((employee.employee_id, year, month)):
            summary = self.compute(employee, year, month, today=today)
            self._summaries.save(summary)

        logger.info(
            "payroll recomputed employee=%s month=%04d-%02d gross=%s deductions=%s overtime=%s net=%s",
            employee.employee_id,
            year,
            month,
            summary.gross_salary,
            summary.total_deductions,
            summary.overtime_pay,
            summary.net_pay,
        )
        return summary

    def recompute_month(self, *, year: int, month: int, today: Optional[date] = None) -> list[EmployeePayrollSummary]:
        """Recompute every active employee; one failure does not stop the batch."""
        year, month = require_month(year, month)
        employees = list(self._employees.list_active())
        if not employees:
            return []

        out: list[EmployeePayrollSummary] = []
        with ThreadPoolExecutor(max_workers=min(self._max_workers, len(employees))) as pool:
            futures = {pool.submit(self._recompute, e, year, month, today): e for e in employees}
            for future, employee in futures.items():
                try:
                    out.append(future.result())
                except Exception:
                    logger.exception(
                        "payroll recompute failed employee=%s month=%04d-%02d", employee.employee_id, year, month
                    )

        out.sort(key=lambda s: s.employee_id)
        return out

    def get_summary(self, *, employee_id: int, year: int, month: int) -> EmployeePayrollSummary:
        year, month = require_month(year, month)
        summary = self._summaries.get(employee_id=int(employee_id), year=year, month=month)
        if summary is None:
            raise NotFoundError("Payroll summary has not been computed for this month")
        return summary

    def list_summaries(self, *, year: int, month: int) -> Sequence[EmployeePayrollSummary]:
        year, month = require_month(year, month)
        return self._summaries.list_for_month(year=year, month=month)

    # -------- Overtime decisions --------
    def list_overtime(self, *, employee_id: int, year: int, month: int) -> Sequence[OvertimeRequest]:
        year, month = require_month(year, month)
        start, end = month_bounds(year, month)
        return self._overtime.list_for_employee(employee_id=int(employee_id), start=start, end=end)

    def approve_overtime(self, *, request_id: int, approver_id: int) -> Result[OvertimeRequest]:
        """Approved pay counts toward net pay on the next recompute of its month."""
        try:
            return Result.success(self._decide(request_id, approver_id, OvertimeStatus.APPROVED, None))
        except DomainError as e:
            logger.info("overtime approval refused request=%s approver=%s: %s", request_id, approver_id, e)
            return Result.failure(e)

    def reject_overtime(self, *, request_id: int, approver_id: int, reason: str) -> Result[OvertimeRequest]:
        try:
            reason = require_non_empty(reason, "Rejection reason")
            return Result.success(self._decide(request_id, approver_id, OvertimeStatus.REJECTED, reason))
        except DomainError as e:
            logger.info("overtime rejection refused request=%s approver=%s: %s", request_id, approver_id, e)
            return Result.failure(e)

    def _decide(
        self,
        request_id: int,
        approver_id: int,
        status: OvertimeStatus,
        reason: Optional[str],
    ) -> OvertimeRequest:
        request = self._overtime.get(request_id=int(request_id))
        if request is None:
            raise NotFoundError("Overtime request not found")
        if request.status != OvertimeStatus.PENDING:
            raise ValidationError(f"Overtime request is already {request.status.value}")
        if self._employees.get_by_id(int(approver_id)) is None:
            raise NotFoundError("Approver not found")
        if int(approver_id) == request.employee_id:
            raise AuthorizationError("Employees cannot decide their own overtime")

        now = self._clock()
        ok = self._overtime.update_status(
            request_id=request.request_id,
            status=status,
            decided_by=int(approver_id),
            decided_at=now,
            rejection_reason=reason,
        )
        if not ok:
            raise ConcurrentUpdateError("Overtime request was decided by someone else; reload and retry")

        logger.info(
            "overtime %s request=%s employee=%s day=%s pay=%s by=%s",
            status.value,
            request.request_id,
            request.employee_id,
            request.day.isoformat(),
            request.calculated_pay,
            approver_id,
        )
        return replace(request, status=status, decided_by=int(approver_id), decided_at=now, rejection_reason=reason)
