from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Optional, Sequence

from ..calendars.resolver import default_day_type
from ..common.datetime_utils import iter_dates, month_bounds, worked_minutes
from ..core.constants import DEFAULT_NORMAL_WORKING_HOURS, HOURS_QUANTUM
from ..core.enums import DayStatus, DayType, LeaveStatus
from ..leave.model import LeaveApplication
from .classifier import DayFacts, classify_day
from .model import AttendanceAggregate, AttendanceRecord, DayStatusEntry

_ZERO = Decimal("0")


def hours_between(check_in: datetime, check_out: datetime) -> Decimal:
    """Hours between two timestamps, floored to the minute, 2 decimals."""
    minutes = worked_minutes(check_in, check_out)
    return (Decimal(minutes) / Decimal(60)).quantize(HOURS_QUANTUM, rounding=ROUND_HALF_UP)


def overtime_beyond(hours_worked: Decimal, normal_working_hours: int | Decimal = DEFAULT_NORMAL_WORKING_HOURS) -> Decimal:
    return max(_ZERO, Decimal(hours_worked) - Decimal(normal_working_hours)).quantize(HOURS_QUANTUM)


def record_hours(record: AttendanceRecord) -> Decimal:
    if record.hours_worked is not None:
        return Decimal(record.hours_worked)
    if record.check_in_time and record.check_out_time:
        return hours_between(record.check_in_time, record.check_out_time)
    return _ZERO


@dataclass(frozen=True)
class LeaveDay:
    application_id: int
    is_lop: bool


def expand_leave_days(
    applications: Iterable[LeaveApplication],
    day_types: Mapping[date, DayType],
) -> dict[date, LeaveDay]:
    """Map each working date of every approved application to paid or LOP.

    The first paid_days working dates of an application are paid leave, the
    remaining ones are loss of pay.
    """
    out: dict[date, LeaveDay] = {}
    approved = sorted(
        (a for a in applications if a.status == LeaveStatus.APPROVED),
        key=lambda a: (a.start_date, a.application_id),
    )
    for app in approved:
        working = [
            d for d in iter_dates(app.start_date, app.end_date) if day_types.get(d, default_day_type(d)) == DayType.WORKING
        ]
        for i, d in enumerate(working):
            out.setdefault(d, LeaveDay(application_id=app.application_id, is_lop=i >= app.paid_days))
    return out


def aggregate(
    *,
    employee_id: int,
    year: int,
    month: int,
    records: Sequence[AttendanceRecord],
    day_types: Mapping[date, DayType],
    approved_leaves: Sequence[LeaveApplication],
    today: date,
    join_date: Optional[date] = None,
    normal_working_hours: int | Decimal = DEFAULT_NORMAL_WORKING_HOURS,
) -> AttendanceAggregate:
    """Classify every day of a month and total the result.

    Pure: the same inputs always produce the same aggregate.
    """
    start, end = month_bounds(year, month)
    by_day = {r.work_date: r for r in records if start <= r.work_date <= end}
    leave_days = expand_leave_days(approved_leaves, day_types)

    entries: list[DayStatusEntry] = []
    total_hours = _ZERO
    total_overtime = _ZERO
    working_days = 0

    for d in iter_dates(start, end):
        day_type = day_types.get(d, default_day_type(d))
        if day_type == DayType.WORKING:
            working_days += 1

        record = by_day.get(d)
        leave = leave_days.get(d)
        status = classify_day(
            DayFacts(
                day=d,
                today=today,
                day_type=day_type,
                join_date=join_date,
                record=record,
                is_lop=bool(leave and leave.is_lop),
                is_paid_leave=bool(leave and not leave.is_lop),
            )
        )

        hours = _ZERO
        overtime = _ZERO
        if record is not None and status not in {DayStatus.FUTURE, DayStatus.PRE_JOIN}:
            hours = record_hours(record)
            overtime = (
                Decimal(record.overtime_hours)
                if record.overtime_hours is not None
                else overtime_beyond(hours, normal_working_hours)
            )
        total_hours += hours
        total_overtime += overtime

        entries.append(
            DayStatusEntry(
                day=d,
                status=status,
                hours_worked=hours,
                overtime_hours=overtime,
                application_id=leave.application_id if leave and status in {DayStatus.LOP, DayStatus.LEAVE} else None,
            )
        )

    counts = {s: 0 for s in DayStatus}
    for e in entries:
        counts[e.status] += 1

    return AttendanceAggregate(
        employee_id=int(employee_id),
        year=year,
        month=month,
        daily_statuses=tuple(entries),
        working_days=working_days,
        present_days=counts[DayStatus.PRESENT],
        absent_days=counts[DayStatus.LOP] + counts[DayStatus.NOT_MARKED],
        leave_days=counts[DayStatus.LEAVE],
        lop_days=counts[DayStatus.LOP],
        not_marked_days=counts[DayStatus.NOT_MARKED],
        total_hours_worked=total_hours.quantize(HOURS_QUANTUM),
        overtime_hours=total_overtime.quantize(HOURS_QUANTUM),
    )
