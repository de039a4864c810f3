"""
Tests for the attendance summary endpoints
"""
from datetime import date, time
from decimal import Decimal

from fastapi import status

from app.models.attendance import AttendanceRecord


def _add_day(db, employee, on_date, status_value="present", time_in=None, time_out=None, total_hours=None):
    db.add(AttendanceRecord(
        employee_id=employee.id,
        date=on_date,
        status=status_value,
        time_in=time_in,
        time_out=time_out,
        total_hours=Decimal(total_hours) if total_hours is not None else None,
    ))
    db.commit()


def test_own_summary_for_current_month(client, db, test_employee, auth_headers):
    _add_day(db, test_employee, date(2026, 3, 1), time_in=time(8), time_out=time(17), total_hours="9.00")
    _add_day(db, test_employee, date(2026, 3, 2), status_value="late", time_in=time(9, 30), time_out=time(17, 30), total_hours="8.00")
    # outside the month-to-date window
    _add_day(db, test_employee, date(2026, 2, 27), time_in=time(8), time_out=time(17), total_hours="9.00")

    response = client.get("/api/v1/attendance/summary", headers=auth_headers("EMP001"))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["employee_id"] == test_employee.id
    assert data["period"] == {"start_date": "2026-03-01", "end_date": "2026-03-02"}
    assert data["total_days"] == 2
    assert data["present_days"] == 1
    assert data["late_days"] == 1
    assert data["attendance_rate"] == 50.0
    assert data["regular_hours"] == 16.0
    assert data["overtime_hours"] == 1.0
    assert data["hourly_rate"] == 20.0
    assert data["overtime_rate"] == 30.0
    assert data["regular_pay"] == 320.0
    assert data["overtime_pay"] == 30.0
    assert data["monthly_earnings"] == 350.0
    assert data["avg_check_in"] == "08:45:00"
    assert data["avg_check_out"] == "17:15:00"


def test_summary_with_explicit_range(client, db, test_employee, auth_headers):
    _add_day(db, test_employee, date(2026, 2, 27), total_hours="8.00")

    response = client.get(
        "/api/v1/attendance/summary",
        params={"start_date": "2026-02-01", "end_date": "2026-02-28"},
        headers=auth_headers("EMP001"),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["total_days"] == 1
    assert response.json()["monthly_projection"] == 3520.0


def test_summary_without_records_defaults(client, test_employee, auth_headers):
    data = client.get(
        "/api/v1/attendance/summary",
        params={"period": "week"},
        headers=auth_headers("EMP001"),
    ).json()

    assert data["period"] == {"start_date": "2026-02-23", "end_date": "2026-03-02"}
    assert data["total_days"] == 0
    assert data["attendance_rate"] == 100.0
    assert data["punctuality_rate"] == 100.0


def test_manager_can_read_other_employee_summary(client, db, test_employee, test_manager, auth_headers):
    _add_day(db, test_employee, date(2026, 3, 2), total_hours="8.00")

    response = client.get(f"/api/v1/attendance/summary/{test_employee.id}", headers=auth_headers("MGR001"))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["employee_id"] == test_employee.id
    assert response.json()["total_days"] == 1


def test_employee_cannot_read_other_employee_summary(client, employee_factory, test_employee, auth_headers):
    other = employee_factory("EMP002")

    response = client.get(f"/api/v1/attendance/summary/{other.id}", headers=auth_headers("EMP001"))

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_summary_for_unknown_employee(client, test_admin, auth_headers):
    response = client.get("/api/v1/attendance/summary/9999", headers=auth_headers("ADM001"))

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_summary_rejects_inverted_range(client, test_employee, auth_headers):
    response = client.get(
        "/api/v1/attendance/summary",
        params={"start_date": "2026-03-02", "end_date": "2026-03-01"},
        headers=auth_headers("EMP001"),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_summary_rejects_unknown_period(client, test_employee, auth_headers):
    response = client.get(
        "/api/v1/attendance/summary",
        params={"period": "decade"},
        headers=auth_headers("EMP001"),
    )

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
