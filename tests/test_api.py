from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal

import pytest

from src.payroll_engine.payroll_engine.attendance.service import AttendanceService
from src.payroll_engine.payroll_engine.calendars.model import CalendarDayTypeEntry
from src.payroll_engine.payroll_engine.calendars.resolver import CalendarResolver
from src.payroll_engine.payroll_engine.container import Container
from src.payroll_engine.payroll_engine.core.enums import ApplicantType, ApprovalStage, LeaveStatus, OvertimeStatus
from src.payroll_engine.payroll_engine.employees.model import EmployeeProfile
from src.payroll_engine.payroll_engine.geofence.model import GeoPoint, InstitutionGeofence
from src.payroll_engine.payroll_engine.leave.model import ApprovalHierarchyEdge
from src.payroll_engine.payroll_engine.leave.service import LeaveWorkflowService
from src.payroll_engine.payroll_engine.main import create_app
from src.payroll_engine.payroll_engine.payroll.model import OvertimeRequest
from src.payroll_engine.payroll_engine.payroll.service import PayrollService

NOW = datetime(2025, 3, 12, 9, 0)
MANAGER_POS, STAFF_POS = 3, 5


class InMemoryEmployees:
    def __init__(self, *employees):
        self.by_id = {e.employee_id: e for e in employees}

    def get_by_id(self, employee_id):
        return self.by_id.get(int(employee_id))

    def list_active(self):
        return list(self.by_id.values())


class InMemoryCalendars:
    def __init__(self):
        self.entries = {}

    def list_entries(self, *, ref, start, end):
        return [e for (r, d), e in self.entries.items() if r == ref and start <= d <= end]

    def upsert(self, *, ref, day, day_type, description=None):
        self.entries[(ref, day)] = CalendarDayTypeEntry(ref.scope, ref.scope_id, day, day_type, description)

    def delete(self, *, ref, day):
        return self.entries.pop((ref, day), None) is not None


class InMemoryGeofences:
    def get_for_institution(self, institution_id):
        return InstitutionGeofence(institution_id=7, location=GeoPoint(12.9716, 77.5946), radius_meters=1500)


class InMemoryAttendance:
    def __init__(self):
        self.rows = {}

    def get_recent_for_employee(self, employee_id, limit):
        return [r for r in self.rows.values() if r.employee_id == employee_id][:limit]

    def get_for_employee_and_date(self, employee_id, work_date):
        return self.rows.get((employee_id, work_date))

    def list_for_employee(self, *, employee_id, start, end):
        return [r for (e, d), r in self.rows.items() if e == employee_id and start <= d <= end]

    def upsert_checkin(self, *, employee_id, work_date, check_in_time, geofence):
        from src.payroll_engine.payroll_engine.attendance.model import AttendanceRecord
        from src.payroll_engine.payroll_engine.core.enums import AttendanceStatus

        existing = self.rows.get((employee_id, work_date))
        if existing is not None and existing.is_locked:
            return None
        record = AttendanceRecord(
            attendance_id=len(self.rows) + 1,
            employee_id=employee_id,
            work_date=work_date,
            status=AttendanceStatus.CHECKED_IN,
            check_in_time=check_in_time,
            check_in_location=geofence.location,
            distance_meters=geofence.distance_meters,
            location_validated=geofence.validated,
        )
        self.rows[(employee_id, work_date)] = record
        return record.attendance_id

    def update_checkout(self, **kwargs):
        return False


class InMemoryLeaves:
    def __init__(self):
        self.apps = {}

    def create(self, application):
        app_id = len(self.apps) + 1
        self.apps[app_id] = replace(application, application_id=app_id)
        return app_id

    def get(self, *, application_id):
        return self.apps.get(int(application_id))

    def list_for_applicant(self, *, applicant_id, statuses=None):
        wanted = set(statuses or [])
        return [a for a in self.apps.values() if a.applicant_id == applicant_id and (not wanted or a.status in wanted)]

    def list_pending_at_stage(self, *, stage):
        return [a for a in self.apps.values() if a.status == LeaveStatus.PENDING and a.approval_stage == stage]

    def update_if_unchanged(self, updated, *, expected_status, expected_stage):
        current = self.apps[updated.application_id]
        if current.status != expected_status or current.approval_stage != expected_stage:
            return False
        self.apps[updated.application_id] = updated
        return True


class InMemoryHierarchy:
    def list_edges(self, *, applicant_type):
        return [ApprovalHierarchyEdge(ApplicantType.STAFF, MANAGER_POS, ApprovalStage.MANAGER_PENDING, 1)]


class NoTimetable:
    def list_slots(self, *, officer_id, start, end):
        return []

    def save_assignments(self, *, application_id, assignments):
        return None

    def release_assignments(self, *, application_id):
        return 0


class InMemoryOvertime:
    def __init__(self):
        self.items = []

    def create(self, request):
        self.items.append(replace(request, request_id=len(self.items) + 1))
        return len(self.items)

    def get(self, *, request_id):
        return next((r for r in self.items if r.request_id == int(request_id)), None)

    def list_for_employee(self, *, employee_id, start, end):
        return [r for r in self.items if r.employee_id == employee_id and start <= r.day <= end]

    def update_status(self, *, request_id, status, decided_by, decided_at, rejection_reason=None):
        for i, r in enumerate(self.items):
            if r.request_id == int(request_id) and r.status == OvertimeStatus.PENDING:
                self.items[i] = replace(
                    r, status=status, decided_by=decided_by, decided_at=decided_at, rejection_reason=rejection_reason
                )
                return True
        return False


class InMemorySummaries:
    def __init__(self):
        self.rows = {}

    def save(self, summary):
        self.rows[(summary.employee_id, summary.year, summary.month)] = summary

    def get(self, *, employee_id, year, month):
        return self.rows.get((employee_id, year, month))

    def list_for_month(self, *, year, month):
        return [s for (_, y, m), s in sorted(self.rows.items()) if (y, m) == (year, month)]


def _employee(employee_id, position_id, manager_id=None):
    return EmployeeProfile(
        employee_id=employee_id,
        name=f"E{employee_id}",
        applicant_type=ApplicantType.STAFF,
        join_date=date(2025, 1, 1),
        monthly_salary=Decimal("30000"),
        position_id=position_id,
        manager_id=manager_id,
    )


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    clock = lambda: NOW  # noqa: E731

    employees = InMemoryEmployees(_employee(3, MANAGER_POS), _employee(10, STAFF_POS, manager_id=3))
    resolver = CalendarResolver(InMemoryCalendars())
    leaves = InMemoryLeaves()
    overtime = InMemoryOvertime()
    overtime.create(
        OvertimeRequest(
            request_id=0,
            employee_id=10,
            day=date(2025, 2, 12),
            overtime_hours=Decimal("2.00"),
            hourly_rate=Decimal("200"),
            overtime_multiplier=Decimal("1.5"),
            calculated_pay=Decimal("600.00"),
        )
    )
    attendance_service = AttendanceService(
        InMemoryAttendance(), employees, InMemoryGeofences(), overtime, resolver, leaves, clock=clock
    )
    container = Container(
        conn=None,
        calendar_resolver=resolver,
        attendance_service=attendance_service,
        leave_service=LeaveWorkflowService(leaves, InMemoryHierarchy(), NoTimetable(), employees, resolver, clock=clock),
        payroll_service=PayrollService(employees, overtime, InMemorySummaries(), attendance_service, clock=clock),
    )
    app = create_app(container=container)
    app.config["TESTING"] = True
    return app.test_client()


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json() == {"ok": True}


def test_calendar_set_and_read(client):
    resp = client.put("/api/calendars/company/days", json={"day": "2025-03-19", "day_type": "holiday"})
    assert resp.status_code == 200

    resp = client.get("/api/calendars/company/2025/3")
    days = {d["day"]: d["day_type"] for d in resp.get_json()["data"]}
    assert days["2025-03-19"] == "holiday"
    assert days["2025-03-15"] == "weekend"
    assert days["2025-03-17"] == "working"


def test_calendar_rejects_unknown_scope(client):
    resp = client.get("/api/calendars/moon/2025/3")
    assert resp.status_code == 400
    assert resp.get_json()["error"]["code"] == "validation_error"


def test_check_in_skipping_gps(client):
    resp = client.post("/api/attendance/checkin", json={"employee_id": 10, "skip_gps": True})

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["ok"] is True
    assert body["data"]["status"] == "checked_in"
    assert body["data"]["location_validated"] is None


def test_check_in_requires_employee_id(client):
    resp = client.post("/api/attendance/checkin", json={})
    assert resp.status_code == 400


def test_check_in_unknown_employee_is_404(client):
    resp = client.post("/api/attendance/checkin", json={"employee_id": 999})
    assert resp.status_code == 404
    assert resp.get_json()["error"]["code"] == "not_found"


def test_leave_submit_and_approve(client):
    resp = client.post(
        "/api/leave/applications",
        json={
            "applicant_id": 10,
            "start_date": "2025-03-17",
            "end_date": "2025-03-18",
            "leave_type": "casual",
            "reason": "family",
        },
    )
    assert resp.status_code == 201
    app = resp.get_json()["data"]
    assert app["status"] == "pending"
    assert app["approval_stage"] == "manager_pending"
    assert app["total_days"] == 2

    resp = client.post(f"/api/leave/applications/{app['application_id']}/approve", json={"approver_id": 10})
    assert resp.status_code == 403

    resp = client.post(f"/api/leave/applications/{app['application_id']}/approve", json={"approver_id": 3})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "approved"

    resp = client.get("/api/leave/employees/10/applications")
    assert [a["status"] for a in resp.get_json()["data"]] == ["approved"]


def test_leave_reject_requires_reason(client):
    resp = client.post(
        "/api/leave/applications",
        json={"applicant_id": 10, "start_date": "2025-03-17", "end_date": "2025-03-17", "leave_type": "sick", "reason": "flu"},
    )
    app_id = resp.get_json()["data"]["application_id"]

    resp = client.post(f"/api/leave/applications/{app_id}/reject", json={"approver_id": 3, "reason": "  "})
    assert resp.status_code == 400


def test_leave_submit_bad_date(client):
    resp = client.post(
        "/api/leave/applications",
        json={"applicant_id": 10, "start_date": "17/03/2025", "end_date": "2025-03-18", "leave_type": "casual", "reason": "x"},
    )
    assert resp.status_code == 400


def test_payroll_summary_missing_then_recomputed(client):
    resp = client.get("/api/payroll/employees/10/2025/2")
    assert resp.status_code == 404

    resp = client.post("/api/payroll/employees/10/2025/2/recompute")
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    # No attendance in February: every working day is unmarked.
    assert data["days_not_marked"] == 20
    assert data["total_deductions"] == "20000.00"
    assert data["net_pay"] == "10000.00"

    resp = client.get("/api/payroll/employees/10/2025/2")
    assert resp.get_json()["data"]["net_pay"] == "10000.00"


def test_payroll_month_validation(client):
    resp = client.post("/api/payroll/2025/13/recompute")
    assert resp.status_code == 400


def test_overtime_approval_feeds_payroll(client):
    resp = client.get("/api/payroll/employees/10/overtime/2025/2")
    [request] = resp.get_json()["data"]
    assert request["status"] == "pending"
    url = f"/api/payroll/overtime/{request['request_id']}"

    resp = client.post(f"{url}/approve", json={"approver_id": 10})
    assert resp.status_code == 403

    resp = client.post(f"{url}/approve", json={"approver_id": 3})
    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["status"] == "approved"
    assert data["decided_by"] == 3

    resp = client.post(f"{url}/reject", json={"approver_id": 3, "reason": "late"})
    assert resp.status_code == 400

    resp = client.post("/api/payroll/employees/10/2025/2/recompute")
    data = resp.get_json()["data"]
    assert data["overtime_pay"] == "600.00"
    assert data["overtime_pending_approval"] == 0
    assert data["net_pay"] == "10600.00"


def test_overtime_reject_needs_reason_and_known_request(client):
    resp = client.post("/api/payroll/overtime/1/reject", json={"approver_id": 3, "reason": " "})
    assert resp.status_code == 400

    resp = client.post("/api/payroll/overtime/99/approve", json={"approver_id": 3})
    assert resp.status_code == 404
