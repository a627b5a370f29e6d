from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Optional, Sequence

from ..calendars.model import CalendarRef
from ..calendars.resolver import CalendarResolver, count_leave_days
from ..common.datetime_utils import now_local
from ..common.validators import require_date_range, require_non_empty
from ..core.enums import (
    ApprovalStage,
    LeaveEventType,
    LeaveStatus,
    LeaveType,
    StepStatus,
)
from ..core.exceptions import (
    AuthorizationError,
    ConcurrentUpdateError,
    DomainError,
    NotFoundError,
    OverlappingLeaveError,
    UnassignedSubstituteError,
    ValidationError,
)
from ..core.result import Result
from ..employees.model import EmployeeProfile
from ..employees.repository import EmployeeRepository
from .ledger import LeaveLedger
from .model import (
    ApprovalHierarchyEdge,
    ApprovalStep,
    LeaveApplication,
    LeaveBalance,
    LeaveEvent,
    NewLeaveApplication,
    SubstituteAssignment,
    TeachingSlot,
)
from .notifications import LoggingNotificationSink, NotificationSink
from .repository import ApprovalHierarchyRepository, LeaveRepository, TimetableRepository

logger = logging.getLogger(__name__)


def select_chain_edges(edges: Sequence[ApprovalHierarchyEdge], applicant: EmployeeProfile) -> list[ApprovalHierarchyEdge]:
    """Position-specific chain if configured, else the applicant type's global chain."""
    same_type = [e for e in edges if e.applicant_type == applicant.applicant_type]
    chosen = [
        e for e in same_type if e.applicant_position_id is not None and e.applicant_position_id == applicant.position_id
    ]
    if not chosen:
        chosen = [e for e in same_type if e.applicant_position_id is None]
    return sorted(chosen, key=lambda e: e.approval_order)


def build_approval_chain(edges: Sequence[ApprovalHierarchyEdge], applicant: EmployeeProfile) -> tuple[ApprovalStep, ...]:
    steps = []
    for e in select_chain_edges(edges, applicant):
        skipped = e.approver_position_id is None or (
            e.stage == ApprovalStage.MANAGER_PENDING and applicant.manager_id is None
        )
        steps.append(
            ApprovalStep(
                stage=e.stage,
                approver_position_id=e.approver_position_id,
                order=e.approval_order,
                status=StepStatus.SKIPPED if skipped else StepStatus.PENDING,
            )
        )
    return tuple(steps)


def stage_of(chain: Sequence[ApprovalStep]) -> ApprovalStage:
    for step in chain:
        if step.status == StepStatus.PENDING:
            return step.stage
    return ApprovalStage.COMPLETED


def _mark_step(chain: Sequence[ApprovalStep], order: int, **changes) -> tuple[ApprovalStep, ...]:
    return tuple(replace(s, **changes) if s.order == order else s for s in chain)


class LeaveWorkflowService:
    """Drives a leave application through submission, the position-based
    approval chain and its terminal outcome.

    Every public operation returns a Result. Validation happens before any
    write, so a failed operation leaves no partial state behind.
    """

    def __init__(
        self,
        leaves: LeaveRepository,
        hierarchy: ApprovalHierarchyRepository,
        timetable: TimetableRepository,
        employees: EmployeeRepository,
        calendar: CalendarResolver,
        *,
        ledger: Optional[LeaveLedger] = None,
        notifications: Optional[NotificationSink] = None,
        clock: Callable[[], datetime] = now_local,
    ):
        self._leaves = leaves
        self._hierarchy = hierarchy
        self._timetable = timetable
        self._employees = employees
        self._calendar = calendar
        self._ledger = ledger or LeaveLedger()
        self._notifications = notifications or LoggingNotificationSink()
        self._clock = clock

    # -------- Ledger --------
    def get_balance(self, *, employee_id: int, year: int, month: int) -> LeaveBalance:
        employee = self._require_employee(employee_id)
        return self._balance(employee, year, month)

    def _balance(self, employee: EmployeeProfile, year: int, month: int) -> LeaveBalance:
        history = self._leaves.list_for_applicant(applicant_id=employee.employee_id, statuses=[LeaveStatus.APPROVED])
        return self._ledger.balance_for(
            employee_id=employee.employee_id,
            join_date=employee.join_date,
            applications=history,
            year=year,
            month=month,
        )

    # -------- Submit --------
    def submit(self, new: NewLeaveApplication) -> Result[LeaveApplication]:
        try:
            return self._submit(new)
        except DomainError as e:
            logger.info("leave submission refused applicant=%s: %s", new.applicant_id, e)
            return Result.failure(e)

    def _submit(self, new: NewLeaveApplication) -> Result[LeaveApplication]:
        applicant = self._require_employee(new.applicant_id)
        start, end = require_date_range(new.start_date, new.end_date)
        reason = require_non_empty(new.reason, "Reason")
        try:
            leave_type = LeaveType(new.leave_type)
        except ValueError:
            raise ValidationError("Leave type is not valid")

        ref = CalendarRef.for_employee(applicant)
        total_days = count_leave_days(start, end, self._calendar.non_working_days_in_range(ref, start, end))
        if total_days == 0:
            raise ValidationError("Selected range has no working days")

        approved = self._leaves.list_for_applicant(applicant_id=applicant.employee_id, statuses=[LeaveStatus.APPROVED])
        clash = next((a for a in approved if a.overlaps(start, end)), None)
        if clash:
            raise OverlappingLeaveError(
                f"Dates overlap approved leave {clash.start_date.isoformat()}..{clash.end_date.isoformat()}"
            )

        assignments: tuple[SubstituteAssignment, ...] = ()
        if applicant.is_officer:
            slots = self._timetable.list_slots(officer_id=applicant.employee_id, start=start, end=end)
            assignments = self._validate_substitutes(applicant, slots, new.substitute_assignments)

        balance = self._ledger.balance_for(
            employee_id=applicant.employee_id,
            join_date=applicant.join_date,
            applications=approved,
            year=start.year,
            month=start.month,
        )
        quote = self._ledger.quote(balance, total_days)

        chain = build_approval_chain(self._hierarchy.list_edges(applicant_type=applicant.applicant_type), applicant)
        stage = stage_of(chain)
        now = self._clock()
        status = LeaveStatus.PENDING
        if stage == ApprovalStage.COMPLETED:
            logger.warning(
                "no approver configured for applicant=%s type=%s position=%s; completing without approval",
                applicant.employee_id,
                applicant.applicant_type.value,
                applicant.position_id,
            )
            status = LeaveStatus.APPROVED

        application = LeaveApplication(
            application_id=0,
            applicant_id=applicant.employee_id,
            applicant_type=applicant.applicant_type,
            start_date=start,
            end_date=end,
            leave_type=leave_type,
            reason=reason,
            total_days=quote.total_days,
            paid_days=quote.paid_days,
            lop_days=quote.lop_days,
            status=status,
            approval_stage=stage,
            applied_at=now,
            approval_chain=chain,
            substitute_assignments=assignments,
            decided_at=now if status == LeaveStatus.APPROVED else None,
        )
        application_id = self._leaves.create(application)
        application = replace(application, application_id=int(application_id))
        if assignments:
            self._timetable.save_assignments(application_id=application.application_id, assignments=assignments)

        self._notify(application, LeaveEventType.SUBMITTED, actor_id=applicant.employee_id)
        warnings: list[str] = []
        if quote.lop_days > 0:
            warning = f"{quote.lop_days} of {quote.total_days} day(s) exceed the available balance and will be loss of pay"
            warnings.append(warning)
            self._notify(application, LeaveEventType.LOP_DETERMINED, detail=warning)
        if status == LeaveStatus.APPROVED:
            self._notify(application, LeaveEventType.APPROVED)

        return Result.success(application, warnings=tuple(warnings))

    @staticmethod
    def _validate_substitutes(
        applicant: EmployeeProfile,
        slots: Sequence[TeachingSlot],
        submitted: Sequence[SubstituteAssignment],
    ) -> tuple[SubstituteAssignment, ...]:
        slot_ids = {s.slot_id for s in slots}
        by_slot: dict[int, SubstituteAssignment] = {}
        for a in submitted:
            if a.slot_id not in slot_ids:
                raise ValidationError(f"Slot {a.slot_id} is not a scheduled slot inside the leave range")
            if a.slot_id in by_slot:
                raise ValidationError(f"Slot {a.slot_id} has more than one substitute")
            if a.substitute_officer_id == applicant.employee_id:
                raise ValidationError("An officer cannot substitute for their own slot")
            by_slot[a.slot_id] = a

        missing = sorted(slot_ids - set(by_slot))
        if missing:
            raise UnassignedSubstituteError(
                f"{len(missing)} scheduled slot(s) have no substitute: {', '.join(str(s) for s in missing)}"
            )

        out = []
        for slot in sorted(slots, key=lambda s: (s.day, s.slot_id)):
            a = by_slot[slot.slot_id]
            out.append(
                SubstituteAssignment(
                    slot_id=slot.slot_id,
                    original_officer_id=applicant.employee_id,
                    substitute_officer_id=int(a.substitute_officer_id),
                    day=slot.day,
                    hours=slot.hours,
                )
            )
        return tuple(out)

    # -------- Approve / reject --------
    def approve(self, *, application_id: int, approver_id: int, comments: str = "") -> Result[LeaveApplication]:
        try:
            return Result.success(self._approve(application_id, approver_id, comments))
        except DomainError as e:
            logger.info("leave approval refused application=%s approver=%s: %s", application_id, approver_id, e)
            return Result.failure(e)

    def _approve(self, application_id: int, approver_id: int, comments: str) -> LeaveApplication:
        app = self._require_pending(application_id)
        step = self._require_approver(app, approver_id)
        now = self._clock()

        chain = _mark_step(
            app.approval_chain,
            step.order,
            status=StepStatus.APPROVED,
            decided_by=int(approver_id),
            decided_at=now,
            comments=(comments or "").strip() or None,
        )
        next_stage = stage_of(chain)

        if next_stage == ApprovalStage.COMPLETED:
            applicant = self._require_employee(app.applicant_id)
            balance = self._balance(applicant, app.start_date.year, app.start_date.month)
            quote = self._ledger.quote(balance, app.total_days)
            updated = replace(
                app,
                approval_chain=chain,
                approval_stage=ApprovalStage.COMPLETED,
                status=LeaveStatus.APPROVED,
                paid_days=quote.paid_days,
                lop_days=quote.lop_days,
                decided_by=int(approver_id),
                decided_at=now,
            )
        else:
            updated = replace(app, approval_chain=chain, approval_stage=next_stage)

        self._write(updated, app)

        if updated.status == LeaveStatus.APPROVED:
            self._notify(updated, LeaveEventType.APPROVED, actor_id=approver_id)
            if updated.lop_days != app.lop_days and updated.lop_days > 0:
                self._notify(updated, LeaveEventType.LOP_DETERMINED, detail=f"{updated.lop_days} day(s) loss of pay")
        else:
            self._notify(updated, LeaveEventType.STAGE_APPROVED, actor_id=approver_id)
        return updated

    def reject(self, *, application_id: int, approver_id: int, reason: str) -> Result[LeaveApplication]:
        try:
            return Result.success(self._reject(application_id, approver_id, reason))
        except DomainError as e:
            logger.info("leave rejection refused application=%s approver=%s: %s", application_id, approver_id, e)
            return Result.failure(e)

    def _reject(self, application_id: int, approver_id: int, reason: str) -> LeaveApplication:
        reason = require_non_empty(reason, "Rejection reason")
        app = self._require_pending(application_id)
        step = self._require_approver(app, approver_id)
        now = self._clock()

        updated = replace(
            app,
            approval_chain=_mark_step(
                app.approval_chain,
                step.order,
                status=StepStatus.REJECTED,
                decided_by=int(approver_id),
                decided_at=now,
                comments=reason,
            ),
            status=LeaveStatus.REJECTED,
            decided_by=int(approver_id),
            decided_at=now,
            rejection_reason=reason,
        )
        self._write(updated, app)
        if app.substitute_assignments:
            self._timetable.release_assignments(application_id=app.application_id)

        self._notify(updated, LeaveEventType.REJECTED, actor_id=approver_id, detail=reason)
        return updated

    # -------- Cancel --------
    def cancel(self, *, application_id: int, applicant_id: int, today: Optional[date] = None) -> Result[LeaveApplication]:
        try:
            return Result.success(self._cancel(application_id, applicant_id, today or self._clock().date()))
        except DomainError as e:
            logger.info("leave cancellation refused application=%s applicant=%s: %s", application_id, applicant_id, e)
            return Result.failure(e)

    def _cancel(self, application_id: int, applicant_id: int, today: date) -> LeaveApplication:
        app = self._leaves.get(application_id=int(application_id))
        if not app:
            raise NotFoundError("Leave application not found")
        if app.applicant_id != int(applicant_id):
            raise AuthorizationError("Only the applicant can cancel this application")
        if app.status not in {LeaveStatus.PENDING, LeaveStatus.APPROVED}:
            raise ValidationError(f"Application is already {app.status.value}")
        if app.start_date <= today:
            raise ValidationError("Leave has already started and can no longer be cancelled")

        # An approved leave is reversed by recomputation: the ledger only
        # counts APPROVED applications.
        updated = replace(app, status=LeaveStatus.CANCELLED, decided_by=int(applicant_id), decided_at=self._clock())
        self._write(updated, app)
        if app.substitute_assignments:
            self._timetable.release_assignments(application_id=app.application_id)

        self._notify(updated, LeaveEventType.CANCELLED, actor_id=applicant_id)
        return updated

    # -------- Queries --------
    def list_my_applications(self, *, applicant_id: int) -> Sequence[LeaveApplication]:
        return self._leaves.list_for_applicant(applicant_id=int(applicant_id))

    def list_pending_for_approver(self, *, approver_id: int) -> list[LeaveApplication]:
        approver = self._require_employee(approver_id)
        out: list[LeaveApplication] = []
        for stage in (ApprovalStage.MANAGER_PENDING, ApprovalStage.AGM_PENDING, ApprovalStage.CEO_PENDING):
            for app in self._leaves.list_pending_at_stage(stage=stage):
                step = app.current_step
                if step and step.approver_position_id == approver.position_id and app.applicant_id != approver.employee_id:
                    out.append(app)
        return out

    # -------- Helpers --------
    def _require_employee(self, employee_id: int) -> EmployeeProfile:
        employee = self._employees.get_by_id(int(employee_id))
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def _require_pending(self, application_id: int) -> LeaveApplication:
        app = self._leaves.get(application_id=int(application_id))
        if not app:
            raise NotFoundError("Leave application not found")
        if app.status != LeaveStatus.PENDING:
            raise ValidationError(f"Application is already {app.status.value}")
        return app

    def _require_approver(self, app: LeaveApplication, approver_id: int) -> ApprovalStep:
        step = app.current_step
        if step is None:
            logger.warning("pending application=%s has no pending approval step", app.application_id)
            raise ValidationError("Application has no pending approval stage")

        approver = self._require_employee(approver_id)
        if approver.employee_id == app.applicant_id:
            raise AuthorizationError("Applicants cannot approve their own leave")
        if approver.position_id is None or approver.position_id != step.approver_position_id:
            raise AuthorizationError(f"Approver is not mapped to stage {step.stage.value}")
        return step

    def _write(self, updated: LeaveApplication, current: LeaveApplication) -> None:
        ok = self._leaves.update_if_unchanged(
            updated,
            expected_status=current.status,
            expected_stage=current.approval_stage,
        )
        if not ok:
            raise ConcurrentUpdateError("Application was changed by someone else; reload and retry")

    def _notify(
        self,
        app: LeaveApplication,
        event_type: LeaveEventType,
        *,
        actor_id: Optional[int] = None,
        detail: Optional[str] = None,
    ) -> None:
        event = LeaveEvent(
            event_type=event_type,
            application_id=app.application_id,
            applicant_id=app.applicant_id,
            stage=app.approval_stage,
            actor_id=None if actor_id is None else int(actor_id),
            detail=detail,
        )
        try:
            self._notifications.emit(event)
        except Exception:
            # Delivery belongs to the notification collaborator; a failed
            # emit never undoes a committed transition.
            logger.exception("failed to emit leave event %s for application=%s", event_type.value, app.application_id)
