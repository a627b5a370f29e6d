from __future__ import annotations

from datetime import date, datetime
from typing import Any, Iterable, Optional, Sequence

from ..core.enums import ApplicantType, ApprovalStage, LeaveStatus, LeaveType, StepStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .model import ApprovalHierarchyEdge, ApprovalStep, LeaveApplication, SubstituteAssignment, TeachingSlot
from .repository import ApprovalHierarchyRepository, LeaveRepository, TimetableRepository

_APPLICATION_COLUMNS = """
    application_id, applicant_id, applicant_type, start_date, end_date,
    leave_type, reason, total_days, paid_days, lop_days, status,
    approval_stage, applied_at, approval_chain, substitute_assignments,
    decided_by, decided_at, rejection_reason
"""


def _parse_dt(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _chain_to_json(chain: Sequence[ApprovalStep]) -> str:
    return dump_json(
        [
            {
                "stage": s.stage.value,
                "approver_position_id": s.approver_position_id,
                "order": s.order,
                "status": s.status.value,
                "decided_by": s.decided_by,
                "decided_at": s.decided_at.isoformat() if s.decided_at else None,
                "comments": s.comments,
            }
            for s in chain
        ]
    )


def _chain_from_json(value: Any) -> tuple[ApprovalStep, ...]:
    return tuple(
        ApprovalStep(
            stage=ApprovalStage(s["stage"]),
            approver_position_id=s.get("approver_position_id"),
            order=int(s["order"]),
            status=StepStatus(s.get("status") or StepStatus.PENDING.value),
            decided_by=s.get("decided_by"),
            decided_at=_parse_dt(s.get("decided_at")),
            comments=s.get("comments"),
        )
        for s in load_json(value)
    )


def _substitutes_to_json(assignments: Sequence[SubstituteAssignment]) -> str:
    return dump_json(
        [
            {
                "slot_id": a.slot_id,
                "original_officer_id": a.original_officer_id,
                "substitute_officer_id": a.substitute_officer_id,
                "day": a.day.isoformat(),
                "hours": a.hours,
            }
            for a in assignments
        ]
    )


def _substitutes_from_json(value: Any) -> tuple[SubstituteAssignment, ...]:
    return tuple(
        SubstituteAssignment(
            slot_id=int(a["slot_id"]),
            original_officer_id=int(a["original_officer_id"]),
            substitute_officer_id=int(a["substitute_officer_id"]),
            day=_parse_date(a["day"]),
            hours=float(a.get("hours") or 0),
        )
        for a in load_json(value)
    )


def _row_to_application(r: dict) -> LeaveApplication:
    return LeaveApplication(
        application_id=int(r["application_id"]),
        applicant_id=int(r["applicant_id"]),
        applicant_type=ApplicantType(r["applicant_type"]),
        start_date=r["start_date"],
        end_date=r["end_date"],
        leave_type=LeaveType(r["leave_type"]),
        reason=r.get("reason") or "",
        total_days=int(r["total_days"]),
        paid_days=int(r["paid_days"]),
        lop_days=int(r["lop_days"]),
        status=LeaveStatus(r["status"]),
        approval_stage=ApprovalStage(r["approval_stage"]),
        applied_at=r["applied_at"],
        approval_chain=_chain_from_json(r.get("approval_chain")),
        substitute_assignments=_substitutes_from_json(r.get("substitute_assignments")),
        decided_by=r.get("decided_by"),
        decided_at=r.get("decided_at"),
        rejection_reason=r.get("rejection_reason"),
    )


class MySQLLeaveRepository(LeaveRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(self, application: LeaveApplication) -> int:
        a = application
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO leave_applications(
                    applicant_id, applicant_type, start_date, end_date, leave_type, reason,
                    total_days, paid_days, lop_days, status, approval_stage, applied_at,
                    approval_chain, substitute_assignments, decided_by, decided_at
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(a.applicant_id),
                    a.applicant_type.value,
                    a.start_date,
                    a.end_date,
                    a.leave_type.value,
                    a.reason,
                    int(a.total_days),
                    int(a.paid_days),
                    int(a.lop_days),
                    a.status.value,
                    a.approval_stage.value,
                    a.applied_at,
                    _chain_to_json(a.approval_chain),
                    _substitutes_to_json(a.substitute_assignments),
                    a.decided_by,
                    a.decided_at,
                ),
            )
            return int(cur.lastrowid)

    def get(self, *, application_id: int) -> Optional[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_APPLICATION_COLUMNS} FROM leave_applications WHERE application_id=%s",
                (int(application_id),),
            )
            r = fetchone(cur)
            return _row_to_application(r) if r else None

    def list_for_applicant(
        self,
        *,
        applicant_id: int,
        statuses: Optional[Iterable[LeaveStatus]] = None,
    ) -> Sequence[LeaveApplication]:
        clauses = ["applicant_id=%s"]
        params: list[object] = [int(applicant_id)]

        wanted = [s.value for s in (statuses or [])]
        if wanted:
            clauses.append(f"status IN ({','.join(['%s'] * len(wanted))})")
            params.extend(wanted)

        where = " AND ".join(clauses)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPLICATION_COLUMNS}
                FROM leave_applications
                WHERE {where}
                ORDER BY start_date, application_id
                """,
                tuple(params),
            )
            return [_row_to_application(r) for r in fetchall(cur)]

    def list_pending_at_stage(self, *, stage: ApprovalStage) -> Sequence[LeaveApplication]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_APPLICATION_COLUMNS}
                FROM leave_applications
                WHERE status=%s AND approval_stage=%s
                ORDER BY applied_at, application_id
                """,
                (LeaveStatus.PENDING.value, stage.value),
            )
            return [_row_to_application(r) for r in fetchall(cur)]

    def update_if_unchanged(
        self,
        updated: LeaveApplication,
        *,
        expected_status: LeaveStatus,
        expected_stage: ApprovalStage,
    ) -> bool:
        a = updated
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE leave_applications
                SET status=%s, approval_stage=%s, paid_days=%s, lop_days=%s,
                    approval_chain=%s, decided_by=%s, decided_at=%s, rejection_reason=%s
                WHERE application_id=%s AND status=%s AND approval_stage=%s
                """,
                (
                    a.status.value,
                    a.approval_stage.value,
                    int(a.paid_days),
                    int(a.lop_days),
                    _chain_to_json(a.approval_chain),
                    a.decided_by,
                    a.decided_at,
                    a.rejection_reason,
                    int(a.application_id),
                    expected_status.value,
                    expected_stage.value,
                ),
            )
            return cur.rowcount > 0


class MySQLApprovalHierarchyRepository(ApprovalHierarchyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_edges(self, *, applicant_type: ApplicantType) -> Sequence[ApprovalHierarchyEdge]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT applicant_type, applicant_position_id, approver_position_id, stage, approval_order
                FROM approval_hierarchy
                WHERE applicant_type=%s
                ORDER BY approval_order
                """,
                (applicant_type.value,),
            )
            return [
                ApprovalHierarchyEdge(
                    applicant_type=ApplicantType(r["applicant_type"]),
                    approver_position_id=r.get("approver_position_id"),
                    stage=ApprovalStage(r["stage"]),
                    approval_order=int(r["approval_order"]),
                    applicant_position_id=r.get("applicant_position_id"),
                )
                for r in fetchall(cur)
            ]


class MySQLTimetableRepository(TimetableRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_slots(self, *, officer_id: int, start: date, end: date) -> Sequence[TeachingSlot]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT slot_id, officer_id, day, hours, period_label, class_name
                FROM teaching_slots
                WHERE officer_id=%s AND day BETWEEN %s AND %s
                ORDER BY day, slot_id
                """,
                (int(officer_id), start, end),
            )
            return [
                TeachingSlot(
                    slot_id=int(r["slot_id"]),
                    officer_id=int(r["officer_id"]),
                    day=r["day"],
                    hours=float(r.get("hours") or 0),
                    period_label=r.get("period_label"),
                    class_name=r.get("class_name"),
                )
                for r in fetchall(cur)
            ]

    def save_assignments(self, *, application_id: int, assignments: Sequence[SubstituteAssignment]) -> None:
        if not assignments:
            return
        with db_cursor(self._conn_factory) as (_, cur):
            cur.executemany(
                """
                INSERT INTO substitute_assignments(
                    application_id, slot_id, original_officer_id, substitute_officer_id, day, hours, is_active
                )
                VALUES(%s,%s,%s,%s,%s,%s,1)
                """,
                [
                    (
                        int(application_id),
                        int(a.slot_id),
                        int(a.original_officer_id),
                        int(a.substitute_officer_id),
                        a.day,
                        a.hours,
                    )
                    for a in assignments
                ],
            )

    def release_assignments(self, *, application_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE substitute_assignments SET is_active=0 WHERE application_id=%s AND is_active=1",
                (int(application_id),),
            )
            return int(cur.rowcount or 0)
