from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol, Sequence

from ..core.enums import OvertimeStatus
from .model import EmployeePayrollSummary, OvertimeRequest


class OvertimeRepository(Protocol):
    def create(self, request: OvertimeRequest) -> int:
        raise NotImplementedError

    def get(self, *, request_id: int) -> Optional[OvertimeRequest]:
        raise NotImplementedError

    def list_for_employee(self, *, employee_id: int, start: date, end: date) -> Sequence[OvertimeRequest]:
        raise NotImplementedError

    def update_status(
        self,
        *,
        request_id: int,
        status: OvertimeStatus,
        decided_by: int,
        decided_at: datetime,
        rejection_reason: Optional[str] = None,
    ) -> bool:
        """Decide a request that is still pending.

        Returns False when the request is no longer pending, so a concurrent
        decision is never overwritten.
        """

        raise NotImplementedError


class PayrollSummaryRepository(Protocol):
    def save(self, summary: EmployeePayrollSummary) -> None:
        """Upsert on (employee, year, month); last writer wins."""

        raise NotImplementedError

    def get(self, *, employee_id: int, year: int, month: int) -> Optional[EmployeePayrollSummary]:
        raise NotImplementedError

    def list_for_month(self, *, year: int, month: int) -> Sequence[EmployeePayrollSummary]:
        raise NotImplementedError
