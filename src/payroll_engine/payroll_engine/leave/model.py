from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Optional

from ..core.enums import (
    ApplicantType,
    ApprovalStage,
    LeaveEventType,
    LeaveStatus,
    LeaveType,
    StepStatus,
)


@dataclass(frozen=True)
class ApprovalHierarchyEdge:
    """Static configuration: which position approves which stage.

    applicant_position_id=None marks the global chain for an applicant type;
    a position-specific chain takes precedence when one exists.
    """

    applicant_type: ApplicantType
    approver_position_id: Optional[int]
    stage: ApprovalStage
    approval_order: int
    applicant_position_id: Optional[int] = None


@dataclass(frozen=True)
class ApprovalStep:
    """One stage of an application's chain snapshot (audit trail)."""

    stage: ApprovalStage
    approver_position_id: Optional[int]
    order: int
    status: StepStatus = StepStatus.PENDING
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    comments: Optional[str] = None


@dataclass(frozen=True)
class TeachingSlot:
    slot_id: int
    officer_id: int
    day: date
    hours: float
    period_label: Optional[str] = None
    class_name: Optional[str] = None


@dataclass(frozen=True)
class SubstituteAssignment:
    slot_id: int
    original_officer_id: int
    substitute_officer_id: int
    day: date
    hours: float


@dataclass(frozen=True)
class LeaveApplication:
    application_id: int
    applicant_id: int
    applicant_type: ApplicantType
    start_date: date
    end_date: date
    leave_type: LeaveType
    reason: str
    total_days: int
    paid_days: int
    lop_days: int
    status: LeaveStatus
    approval_stage: ApprovalStage
    applied_at: datetime
    approval_chain: tuple[ApprovalStep, ...] = ()
    substitute_assignments: tuple[SubstituteAssignment, ...] = ()
    decided_by: Optional[int] = None
    decided_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {LeaveStatus.REJECTED, LeaveStatus.CANCELLED} or (
            self.status == LeaveStatus.APPROVED and self.approval_stage == ApprovalStage.COMPLETED
        )

    @property
    def current_step(self) -> Optional[ApprovalStep]:
        for step in self.approval_chain:
            if step.status == StepStatus.PENDING:
                return step
        return None

    def overlaps(self, start: date, end: date) -> bool:
        return self.start_date <= end and start <= self.end_date


@dataclass(frozen=True)
class NewLeaveApplication:
    applicant_id: int
    start_date: Optional[date]
    end_date: Optional[date]
    leave_type: str
    reason: str
    substitute_assignments: tuple[SubstituteAssignment, ...] = ()


@dataclass(frozen=True)
class LeaveBalance:
    """One employee-month of the ledger. Always recomputed, never edited."""

    employee_id: int
    year: int
    month: int
    monthly_credit: int
    carried_forward: int
    leave_used: dict[LeaveType, int] = field(default_factory=dict)
    lop_days: int = 0
    balance_remaining: int = 0

    @property
    def total_used(self) -> int:
        return sum(self.leave_used.values())


@dataclass(frozen=True)
class LeaveQuote:
    total_days: int
    paid_days: int
    lop_days: int


@dataclass(frozen=True)
class LeaveEvent:
    event_type: LeaveEventType
    application_id: int
    applicant_id: int
    stage: Optional[ApprovalStage] = None
    actor_id: Optional[int] = None
    detail: Optional[str] = None
