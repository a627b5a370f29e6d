from __future__ import annotations

from typing import Optional

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.http import body_date, json_body, json_endpoint, ok_response
from ..common.validators import require_month
from ..core.enums import CalendarScope, DayType
from ..core.exceptions import ValidationError
from ..container import Container
from .model import CalendarRef


def register(app: Flask, container: Container) -> None:
    resolver = container.calendar_resolver

    def _ref(scope: str, scope_id: Optional[int]) -> CalendarRef:
        try:
            parsed = CalendarScope(scope)
        except ValueError:
            raise ValidationError("scope must be 'company' or 'institution'")
        if parsed == CalendarScope.INSTITUTION:
            if scope_id is None:
                raise ValidationError("Institution calendar requires an institution id")
            return CalendarRef.institution(scope_id)
        return CalendarRef.company()

    def _day_type(raw) -> DayType:
        try:
            return DayType(raw)
        except ValueError:
            raise ValidationError("day_type must be working, weekend or holiday")

    @app.route("/api/calendars/<scope>/<int:year>/<int:month>", methods=["GET"], endpoint="calendar_month")
    @json_endpoint
    def month_view(scope: str, year: int, month: int):
        year, month = require_month(year, month)
        ref = _ref(scope, request.args.get("scope_id", type=int))
        day_types = resolver.day_types_for_month(ref, year, month)
        return ok_response([{"day": d, "day_type": t} for d, t in sorted(day_types.items())])

    @app.route("/api/calendars/<scope>/days", methods=["PUT"], endpoint="calendar_set_day")
    @json_endpoint
    def set_day(scope: str):
        body = json_body()
        ref = _ref(scope, body.get("scope_id"))
        day = body_date(body, "day")
        if day is None:
            raise ValidationError("day is required")
        resolver.set_day_type(ref, day, _day_type(body.get("day_type")), body.get("description"))
        return ok_response({"day": day, "day_type": resolver.resolve(ref, day)})

    @app.route("/api/calendars/<scope>/days/<day>", methods=["DELETE"], endpoint="calendar_delete_day")
    @json_endpoint
    def delete_day(scope: str, day: str):
        ref = _ref(scope, request.args.get("scope_id", type=int))
        try:
            parsed = parse_iso_date(day)
        except ValueError:
            raise ValidationError("day must be a YYYY-MM-DD date")
        return ok_response({"deleted": resolver.delete_day_type(ref, parsed)})

    @app.route("/api/calendars/<scope>/<int:year>/<int:month>/quick-setup", methods=["POST"], endpoint="calendar_quick_setup")
    @json_endpoint
    def quick_setup(scope: str, year: int, month: int):
        year, month = require_month(year, month)
        ref = _ref(scope, json_body().get("scope_id"))
        return ok_response({"days_written": resolver.quick_setup_month(ref, year, month)})
