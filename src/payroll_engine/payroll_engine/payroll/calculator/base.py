from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional, Sequence

from ...attendance.model import AttendanceAggregate
from ...employees.model import EmployeeProfile
from ..model import EmployeePayrollSummary, OvertimeRequest


class PayrollCalculator(ABC):
    """Calculator interface (Strategy Pattern for payroll)."""

    @abstractmethod
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
        raise NotImplementedError
