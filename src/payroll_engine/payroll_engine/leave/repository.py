from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import ApplicantType, ApprovalStage, LeaveStatus
from .model import ApprovalHierarchyEdge, LeaveApplication, SubstituteAssignment, TeachingSlot


class LeaveRepository(Protocol):
    def create(self, application: LeaveApplication) -> int:
        """Persist a new application; returns application_id."""

        raise NotImplementedError

    def get(self, *, application_id: int) -> Optional[LeaveApplication]:
        raise NotImplementedError

    def list_for_applicant(
        self,
        *,
        applicant_id: int,
        statuses: Optional[Iterable[LeaveStatus]] = None,
    ) -> Sequence[LeaveApplication]:
        raise NotImplementedError

    def list_pending_at_stage(self, *, stage: ApprovalStage) -> Sequence[LeaveApplication]:
        raise NotImplementedError

    def update_if_unchanged(
        self,
        updated: LeaveApplication,
        *,
        expected_status: LeaveStatus,
        expected_stage: ApprovalStage,
    ) -> bool:
        """Conditional write: applies only while the stored row still has the
        expected status and stage. Returns False when another writer won."""

        raise NotImplementedError


class ApprovalHierarchyRepository(Protocol):
    def list_edges(self, *, applicant_type: ApplicantType) -> Sequence[ApprovalHierarchyEdge]:
        raise NotImplementedError


class TimetableRepository(Protocol):
    def list_slots(self, *, officer_id: int, start: date, end: date) -> Sequence[TeachingSlot]:
        raise NotImplementedError

    def save_assignments(self, *, application_id: int, assignments: Sequence[SubstituteAssignment]) -> None:
        raise NotImplementedError

    def release_assignments(self, *, application_id: int) -> int:
        raise NotImplementedError
