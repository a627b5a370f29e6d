from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable, Optional

from ..common.datetime_utils import iter_months
from ..core.constants import CARRY_FORWARD_CAP, MAX_LEAVES_PER_MONTH, MONTHLY_LEAVE_ACCRUAL
from ..core.enums import LeaveStatus, LeaveType
from .model import LeaveApplication, LeaveBalance, LeaveQuote

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LeaveLedger:
    """Recomputes leave balances month by month.

    The balance of a month depends only on the join date, the approved
    applications and the accrual rate:

        carried(M+1)   = min(carry_cap, remaining(M))
        remaining(M)   = max(0, credit(M) + carried(M) - paid_used(M))

    Applications count toward the month their start date falls in. Rejected,
    cancelled and pending applications never touch the ledger, so cancelling
    an approved leave is reversed simply by recomputing.
    """

    monthly_accrual: int = MONTHLY_LEAVE_ACCRUAL
    carry_forward_cap: int = CARRY_FORWARD_CAP
    monthly_cap: int = MAX_LEAVES_PER_MONTH

    def months(
        self,
        *,
        employee_id: int,
        join_date: Optional[date],
        applications: Iterable[LeaveApplication],
        until_year: int,
        until_month: int,
    ) -> list[LeaveBalance]:
        approved = [a for a in applications if a.status == LeaveStatus.APPROVED]

        if join_date is not None:
            start = (join_date.year, join_date.month)
        else:
            starts = [(a.start_date.year, a.start_date.month) for a in approved]
            start = min(starts + [(until_year, until_month)])

        if start > (until_year, until_month):
            return []

        by_month: dict[tuple[int, int], list[LeaveApplication]] = {}
        for a in approved:
            by_month.setdefault((a.start_date.year, a.start_date.month), []).append(a)

        out: list[LeaveBalance] = []
        carried = 0
        for year, month in iter_months(start[0], start[1], until_year, until_month):
            used: dict[LeaveType, int] = {}
            lop = 0
            for a in by_month.get((year, month), []):
                used[a.leave_type] = used.get(a.leave_type, 0) + int(a.paid_days)
                lop += int(a.lop_days)

            available = self.monthly_accrual + carried
            paid_used = sum(used.values())
            if paid_used > min(available, self.monthly_cap):
                logger.warning(
                    "leave ledger overdrawn employee=%s month=%04d-%02d paid_used=%s available=%s",
                    employee_id,
                    year,
                    month,
                    paid_used,
                    available,
                )
            remaining = max(0, available - paid_used)

            out.append(
                LeaveBalance(
                    employee_id=int(employee_id),
                    year=year,
                    month=month,
                    monthly_credit=self.monthly_accrual,
                    carried_forward=carried,
                    leave_used=used,
                    lop_days=lop,
                    balance_remaining=remaining,
                )
            )
            carried = min(self.carry_forward_cap, remaining)

        return out

    def balance_for(
        self,
        *,
        employee_id: int,
        join_date: Optional[date],
        applications: Iterable[LeaveApplication],
        year: int,
        month: int,
    ) -> LeaveBalance:
        history = self.months(
            employee_id=employee_id,
            join_date=join_date,
            applications=applications,
            until_year=year,
            until_month=month,
        )
        if not history:
            # Before the join month: no credit at all.
            return LeaveBalance(employee_id=int(employee_id), year=year, month=month, monthly_credit=0, carried_forward=0)
        return history[-1]

    def usable_days(self, balance: LeaveBalance) -> int:
        return max(0, min(balance.balance_remaining, self.monthly_cap - balance.total_used))

    def quote(self, balance: LeaveBalance, requested_days: int) -> LeaveQuote:
        """Split a request into paid and LOP days against a month's balance."""
        requested = max(0, int(requested_days))
        paid = min(requested, self.usable_days(balance))
        return LeaveQuote(total_days=requested, paid_days=paid, lop_days=requested - paid)
