from __future__ import annotations

from datetime import date
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: Optional[str], field_name: str) -> str:
    if not value or not value.strip():
        raise ValidationError(f"{field_name} is required")
    return value.strip()


def require_date_range(start: Optional[date], end: Optional[date]) -> tuple[date, date]:
    if start is None or end is None:
        raise ValidationError("Start date and end date are required")
    if end < start:
        raise ValidationError("End date must be on or after start date")
    return start, end


def require_month(year: int, month: int) -> tuple[int, int]:
    if not 1 <= int(month) <= 12:
        raise ValidationError("Month must be between 1 and 12")
    if int(year) < 1900:
        raise ValidationError("Year is not valid")
    return int(year), int(month)
