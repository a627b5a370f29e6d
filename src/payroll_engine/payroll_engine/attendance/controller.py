from __future__ import annotations

from typing import Optional

from flask import Flask, request

from ..common.datetime_utils import now_local
from ..common.http import body_int, json_body, json_endpoint, ok_response, result_response
from ..core.constants import DEFAULT_HISTORY_LIMIT
from ..core.exceptions import ValidationError
from ..container import Container
from ..geofence.model import GeoPoint


def register(app: Flask, container: Container) -> None:
    service = container.attendance_service

    def _location(body: dict) -> Optional[GeoPoint]:
        lat, lon = body.get("latitude"), body.get("longitude")
        if lat is None or lon is None:
            return None
        try:
            return GeoPoint(latitude=float(lat), longitude=float(lon))
        except (TypeError, ValueError):
            raise ValidationError("latitude and longitude must be numbers")

    @app.route("/api/attendance/checkin", methods=["POST"], endpoint="attendance_checkin")
    @json_endpoint
    def checkin():
        body = json_body()
        result = service.check_in(
            employee_id=body_int(body, "employee_id"),
            location=_location(body),
            skip_gps=bool(body.get("skip_gps", False)),
        )
        return result_response(result, created=True)

    @app.route("/api/attendance/checkout", methods=["POST"], endpoint="attendance_checkout")
    @json_endpoint
    def checkout():
        body = json_body()
        result = service.check_out(
            employee_id=body_int(body, "employee_id"),
            location=_location(body),
            skip_gps=bool(body.get("skip_gps", False)),
        )
        return result_response(result)

    @app.route("/api/attendance/employees/<int:employee_id>/history", methods=["GET"], endpoint="attendance_history")
    @json_endpoint
    def history(employee_id: int):
        limit = request.args.get("limit", type=int) or DEFAULT_HISTORY_LIMIT
        return ok_response(service.get_history(employee_id, limit=limit))

    @app.route("/api/attendance/employees/<int:employee_id>/today", methods=["GET"], endpoint="attendance_today")
    @json_endpoint
    def today_record(employee_id: int):
        return ok_response(service.get_today_record(employee_id, now_local().date()))

    @app.route(
        "/api/attendance/employees/<int:employee_id>/aggregate/<int:year>/<int:month>",
        methods=["GET"],
        endpoint="attendance_aggregate",
    )
    @json_endpoint
    def monthly_aggregate(employee_id: int, year: int, month: int):
        return ok_response(service.monthly_aggregate(employee_id=employee_id, year=year, month=month))
