from __future__ import annotations

from enum import Enum


class ApplicantType(str, Enum):
    """Officers follow institution calendars and teach timetable slots."""

    OFFICER = "officer"
    STAFF = "staff"


class CalendarScope(str, Enum):
    INSTITUTION = "institution"
    COMPANY = "company"


class DayType(str, Enum):
    WORKING = "working"
    WEEKEND = "weekend"
    HOLIDAY = "holiday"


class AttendanceStatus(str, Enum):
    """Raw state of an attendance record as stored."""

    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    ABSENT = "absent"


class DayStatus(str, Enum):
    """Derived per-day status produced by the day classifier."""

    FUTURE = "future"
    PRE_JOIN = "pre_join"
    HOLIDAY = "holiday"
    WEEKEND = "weekend"
    PRESENT = "present"
    LOP = "lop"
    LEAVE = "leave"
    NOT_MARKED = "not_marked"


class LeaveType(str, Enum):
    CASUAL = "casual"
    SICK = "sick"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApprovalStage(str, Enum):
    MANAGER_PENDING = "manager_pending"
    AGM_PENDING = "agm_pending"
    CEO_PENDING = "ceo_pending"
    COMPLETED = "completed"


class StepStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SKIPPED = "skipped"


class OvertimeStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class OvertimeSource(str, Enum):
    AUTO_GENERATED = "auto_generated"
    MANUAL = "manual"


class LeaveEventType(str, Enum):
    SUBMITTED = "submitted"
    STAGE_APPROVED = "stage_approved"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"
    LOP_DETERMINED = "lop_determined"
