from __future__ import annotations

from flask import Flask

from ..common.http import body_date, body_int, json_body, json_endpoint, ok_response, result_response
from ..common.validators import require_month
from ..core.exceptions import ValidationError
from ..container import Container
from .model import NewLeaveApplication, SubstituteAssignment


def register(app: Flask, container: Container) -> None:
    service = container.leave_service

    def _parse_substitutes(body: dict) -> tuple[SubstituteAssignment, ...]:
        raw = body.get("substitute_assignments") or []
        if not isinstance(raw, list):
            raise ValidationError("substitute_assignments must be a list")
        out = []
        for item in raw:
            if not isinstance(item, dict):
                raise ValidationError("Each substitute assignment must be an object")
            out.append(
                SubstituteAssignment(
                    slot_id=body_int(item, "slot_id"),
                    original_officer_id=body_int(body, "applicant_id"),
                    substitute_officer_id=body_int(item, "substitute_officer_id"),
                    day=body_date(item, "day"),
                    hours=float(item.get("hours") or 0),
                )
            )
        return tuple(out)

    @app.route("/api/leave/applications", methods=["POST"], endpoint="leave_submit")
    @json_endpoint
    def submit():
        body = json_body()
        new = NewLeaveApplication(
            applicant_id=body_int(body, "applicant_id"),
            start_date=body_date(body, "start_date"),
            end_date=body_date(body, "end_date"),
            leave_type=str(body.get("leave_type") or ""),
            reason=str(body.get("reason") or ""),
            substitute_assignments=_parse_substitutes(body),
        )
        return result_response(service.submit(new), created=True)

    @app.route("/api/leave/applications/<int:application_id>/approve", methods=["POST"], endpoint="leave_approve")
    @json_endpoint
    def approve(application_id: int):
        body = json_body()
        return result_response(
            service.approve(
                application_id=application_id,
                approver_id=body_int(body, "approver_id"),
                comments=str(body.get("comments") or ""),
            )
        )

    @app.route("/api/leave/applications/<int:application_id>/reject", methods=["POST"], endpoint="leave_reject")
    @json_endpoint
    def reject(application_id: int):
        body = json_body()
        return result_response(
            service.reject(
                application_id=application_id,
                approver_id=body_int(body, "approver_id"),
                reason=str(body.get("reason") or ""),
            )
        )

    @app.route("/api/leave/applications/<int:application_id>/cancel", methods=["POST"], endpoint="leave_cancel")
    @json_endpoint
    def cancel(application_id: int):
        body = json_body()
        return result_response(
            service.cancel(application_id=application_id, applicant_id=body_int(body, "applicant_id"))
        )

    @app.route("/api/leave/employees/<int:employee_id>/applications", methods=["GET"], endpoint="leave_my_applications")
    @json_endpoint
    def my_applications(employee_id: int):
        return ok_response(service.list_my_applications(applicant_id=employee_id))

    @app.route("/api/leave/approvers/<int:approver_id>/pending", methods=["GET"], endpoint="leave_pending")
    @json_endpoint
    def pending(approver_id: int):
        return ok_response(service.list_pending_for_approver(approver_id=approver_id))

    @app.route("/api/leave/employees/<int:employee_id>/balance/<int:year>/<int:month>", methods=["GET"], endpoint="leave_balance")
    @json_endpoint
    def balance(employee_id: int, year: int, month: int):
        year, month = require_month(year, month)
        b = service.get_balance(employee_id=employee_id, year=year, month=month)
        data = {
            "employee_id": b.employee_id,
            "year": b.year,
            "month": b.month,
            "monthly_credit": b.monthly_credit,
            "carried_forward": b.carried_forward,
            "leave_used": b.leave_used,
            "total_used": b.total_used,
            "lop_days": b.lop_days,
            "balance_remaining": b.balance_remaining,
        }
        return ok_response(data)
