from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from src.payroll_engine.payroll_engine.attendance.model import AttendanceAggregate
from src.payroll_engine.payroll_engine.core.enums import ApplicantType, OvertimeStatus
from src.payroll_engine.payroll_engine.employees.model import EmployeeProfile
from src.payroll_engine.payroll_engine.payroll.calculator.standard_calculator import StandardPayrollCalculator, prorated_gross
from src.payroll_engine.payroll_engine.payroll.model import OvertimeRequest


def _employee(salary="30000", join_date=date(2024, 1, 1)) -> EmployeeProfile:
    return EmployeeProfile(
        employee_id=1,
        name="A",
        applicant_type=ApplicantType.STAFF,
        join_date=join_date,
        monthly_salary=Decimal(salary),
    )


def _aggregate(*, not_marked=0, leave=0, lop=0, present=0, year=2025, month=4) -> AttendanceAggregate:
    return AttendanceAggregate(
        employee_id=1,
        year=year,
        month=month,
        present_days=present,
        leave_days=leave,
        lop_days=lop,
        not_marked_days=not_marked,
        absent_days=lop + not_marked,
    )


def _overtime(day: date, pay: str, status=OvertimeStatus.APPROVED) -> OvertimeRequest:
    return OvertimeRequest(
        request_id=0,
        employee_id=1,
        day=day,
        overtime_hours=Decimal("1"),
        hourly_rate=Decimal("0"),
        overtime_multiplier=Decimal("1.5"),
        calculated_pay=Decimal(pay),
        status=status,
    )


def test_payroll_with_unmarked_days_scenario():
    summary = StandardPayrollCalculator().compute(
        employee=_employee(),
        year=2025,
        month=4,
        aggregate=_aggregate(not_marked=2, lop=1),
        overtime_requests=[_overtime(date(2025, 4, 10), "500")],
    )

    assert summary.per_day_salary == Decimal("1000.00")
    assert summary.gross_salary == Decimal("30000.00")
    assert summary.total_deductions == Decimal("3000.00")
    assert summary.overtime_pay == Decimal("500.00")
    assert summary.net_pay == Decimal("27500.00")


def test_paid_leave_is_not_deducted():
    summary = StandardPayrollCalculator().compute(
        employee=_employee(),
        year=2025,
        month=4,
        aggregate=_aggregate(leave=2),
        overtime_requests=[],
    )
    assert summary.total_deductions == Decimal("0.00")
    assert summary.net_pay == Decimal("30000.00")


def test_lop_is_taken_from_days_classified_in_the_month():
    summary = StandardPayrollCalculator().compute(
        employee=_employee(),
        year=2025,
        month=2,
        aggregate=_aggregate(leave=2, lop=2, year=2025, month=2),
        overtime_requests=[],
    )

    assert summary.days_lop == 2
    assert summary.days_absent == 2
    assert summary.days_leave == 4
    assert summary.total_deductions == Decimal("2000.00")
    assert summary.net_pay == Decimal("28000.00")


def test_only_approved_overtime_in_month_is_paid():
    requests = [
        _overtime(date(2025, 4, 1), "100"),
        _overtime(date(2025, 4, 2), "200", OvertimeStatus.PENDING),
        _overtime(date(2025, 4, 3), "300", OvertimeStatus.REJECTED),
        _overtime(date(2025, 5, 1), "400"),
        _overtime(date(2025, 4, 30), "50.55"),
    ]
    summary = StandardPayrollCalculator().compute(
        employee=_employee(),
        year=2025,
        month=4,
        aggregate=_aggregate(),
        overtime_requests=requests,
    )

    assert summary.overtime_pay == Decimal("150.55")
    assert summary.overtime_pending_approval == 1


@pytest.mark.parametrize(
    "join_date,expected",
    [
        (None, Decimal("30000.00")),
        (date(2025, 4, 1), Decimal("30000.00")),
        (date(2024, 12, 31), Decimal("30000.00")),
        (date(2025, 4, 16), Decimal("15000.00")),
        (date(2025, 4, 30), Decimal("1000.00")),
        (date(2025, 5, 1), Decimal("0.00")),
    ],
)
def test_gross_is_prorated_from_join_date(join_date, expected):
    assert prorated_gross(Decimal("30000"), join_date, 2025, 4) == expected


@pytest.mark.parametrize(
    "salary,not_marked,lop,overtime",
    [
        ("25000", 1, 2, "0"),
        ("33333.33", 3, 0, "123.45"),
        ("18000", 0, 0, "0.01"),
        ("47500.50", 5, 4, "999.99"),
    ],
)
def test_net_pay_matches_formula_exactly(salary, not_marked, lop, overtime):
    summary = StandardPayrollCalculator().compute(
        employee=_employee(salary, join_date=date(2025, 4, 11)),
        year=2025,
        month=4,
        aggregate=_aggregate(not_marked=not_marked, lop=lop),
        overtime_requests=[_overtime(date(2025, 4, 12), overtime)],
    )

    assert summary.net_pay == summary.gross_salary - summary.total_deductions + summary.overtime_pay
    assert summary.net_pay.as_tuple().exponent == -2


def test_deductions_use_unrounded_per_day_rate():
    summary = StandardPayrollCalculator().compute(
        employee=_employee("25000"),
        year=2025,
        month=4,
        aggregate=_aggregate(not_marked=1, lop=2),
        overtime_requests=[],
    )
    assert summary.per_day_salary == Decimal("833.33")
    assert summary.total_deductions == Decimal("2500.00")


def test_attendance_percentage():
    summary = StandardPayrollCalculator().compute(
        employee=_employee(),
        year=2025,
        month=4,
        aggregate=_aggregate(leave=2, lop=1, not_marked=3),
        overtime_requests=[],
    )
    # (30 - (3 + 3)) * 100 / 30
    assert summary.attendance_percentage == Decimal("80.00")
    assert summary.warnings == ()


def test_out_of_range_percentage_is_flagged_not_clamped(caplog):
    summary = StandardPayrollCalculator().compute(
        employee=_employee(),
        year=2025,
        month=4,
        aggregate=_aggregate(leave=25, not_marked=10),
        overtime_requests=[],
    )

    assert summary.attendance_percentage == Decimal("-16.67")
    assert summary.warnings
    assert "outside 0..100" in caplog.text


def test_calculator_is_deterministic():
    calc = StandardPayrollCalculator()
    kwargs = dict(
        employee=_employee(),
        year=2025,
        month=4,
        aggregate=_aggregate(not_marked=2, lop=1),
        overtime_requests=[_overtime(date(2025, 4, 10), "500")],
    )
    assert calc.compute(**kwargs) == calc.compute(**kwargs)
