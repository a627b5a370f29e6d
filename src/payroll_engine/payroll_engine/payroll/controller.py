from __future__ import annotations

from flask import Flask

from ..common.http import body_int, json_body, json_endpoint, ok_response, result_response
from ..container import Container


def register(app: Flask, container: Container) -> None:
    service = container.payroll_service

    @app.route(
        "/api/payroll/employees/<int:employee_id>/<int:year>/<int:month>/recompute",
        methods=["POST"],
        endpoint="payroll_recompute",
    )
    @json_endpoint
    def recompute(employee_id: int, year: int, month: int):
        return ok_response(service.recompute(employee_id=employee_id, year=year, month=month))

    @app.route("/api/payroll/employees/<int:employee_id>/<int:year>/<int:month>", methods=["GET"], endpoint="payroll_summary")
    @json_endpoint
    def summary(employee_id: int, year: int, month: int):
        return ok_response(service.get_summary(employee_id=employee_id, year=year, month=month))

    @app.route("/api/payroll/<int:year>/<int:month>/recompute", methods=["POST"], endpoint="payroll_recompute_month")
    @json_endpoint
    def recompute_month(year: int, month: int):
        return ok_response(service.recompute_month(year=year, month=month))

    @app.route("/api/payroll/<int:year>/<int:month>", methods=["GET"], endpoint="payroll_month")
    @json_endpoint
    def month_summaries(year: int, month: int):
        return ok_response(service.list_summaries(year=year, month=month))

    @app.route(
        "/api/payroll/employees/<int:employee_id>/overtime/<int:year>/<int:month>",
        methods=["GET"],
        endpoint="payroll_overtime_list",
    )
    @json_endpoint
    def overtime_list(employee_id: int, year: int, month: int):
        return ok_response(service.list_overtime(employee_id=employee_id, year=year, month=month))

    @app.route("/api/payroll/overtime/<int:request_id>/approve", methods=["POST"], endpoint="payroll_overtime_approve")
    @json_endpoint
    def overtime_approve(request_id: int):
        body = json_body()
        return result_response(service.approve_overtime(request_id=request_id, approver_id=body_int(body, "approver_id")))

    @app.route("/api/payroll/overtime/<int:request_id>/reject", methods=["POST"], endpoint="payroll_overtime_reject")
    @json_endpoint
    def overtime_reject(request_id: int):
        body = json_body()
        return result_response(
            service.reject_overtime(
                request_id=request_id,
                approver_id=body_int(body, "approver_id"),
                reason=str(body.get("reason") or ""),
            )
        )
