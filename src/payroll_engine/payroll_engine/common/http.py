from __future__ import annotations

import dataclasses
import logging
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from functools import wraps
from typing import Any, Optional

from flask import jsonify, request

from ..core.exceptions import (
    AuthorizationError,
    ConcurrentUpdateError,
    DomainError,
    NotFoundError,
    ValidationError,
)
from ..core.result import Result
from .datetime_utils import parse_iso_date

logger = logging.getLogger(__name__)


def to_jsonable(value: Any) -> Any:
    """Dataclasses, enums, dates and Decimals into plain JSON types."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {to_jsonable(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [to_jsonable(v) for v in value]
    return value


def status_for(error: DomainError) -> int:
    if isinstance(error, NotFoundError):
        return 404
    if isinstance(error, AuthorizationError):
        return 403
    if isinstance(error, ConcurrentUpdateError):
        return 409
    return 400


def error_response(error: DomainError):
    return jsonify({"ok": False, "error": {"code": error.code, "message": str(error)}}), status_for(error)


def result_response(result: Result, *, created: bool = False):
    if not result.ok:
        return error_response(result.error)
    body = {"ok": True, "data": to_jsonable(result.value), "warnings": list(result.warnings)}
    return jsonify(body), 201 if created else 200


def ok_response(data: Any):
    return jsonify({"ok": True, "data": to_jsonable(data), "warnings": []}), 200


def json_body() -> dict:
    return request.get_json(silent=True) or {}


def body_int(body: dict, key: str, *, required: bool = True) -> Optional[int]:
    raw = body.get(key)
    if raw is None or raw == "":
        if required:
            raise ValidationError(f"{key} is required")
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer")


def body_date(body: dict, key: str) -> Optional[date]:
    raw = body.get(key)
    if not raw:
        return None
    try:
        return parse_iso_date(str(raw))
    except ValueError:
        raise ValidationError(f"{key} must be a YYYY-MM-DD date")


def json_endpoint(view):
    """Map DomainError to a 4xx body and anything else to a logged 500."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        try:
            return view(*args, **kwargs)
        except DomainError as e:
            return error_response(e)
        except Exception:
            logger.exception("unhandled error in %s", request.path)
            return jsonify({"ok": False, "error": {"code": "internal_error", "message": "Internal server error"}}), 500

    return wrapper
