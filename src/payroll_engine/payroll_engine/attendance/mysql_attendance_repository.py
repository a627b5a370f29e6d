from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from ..core.enums import AttendanceStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import as_optional_bool, as_optional_float, db_cursor, fetchall, fetchone
from ..geofence.model import GeofenceCheck, GeoPoint
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = """
    attendance_id, employee_id, work_date, status, check_in_time, check_out_time,
    check_in_latitude, check_in_longitude, check_out_latitude, check_out_longitude,
    distance_meters, location_validated, check_out_distance_meters, check_out_validated,
    hours_worked, overtime_hours, is_locked
"""


def _point(lat, lon) -> Optional[GeoPoint]:
    lat, lon = as_optional_float(lat), as_optional_float(lon)
    if lat is None or lon is None:
        return None
    return GeoPoint(latitude=lat, longitude=lon)


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=int(r["attendance_id"]),
        employee_id=int(r["employee_id"]),
        work_date=r["work_date"],
        status=AttendanceStatus(r["status"]),
        check_in_time=r.get("check_in_time"),
        check_out_time=r.get("check_out_time"),
        check_in_location=_point(r.get("check_in_latitude"), r.get("check_in_longitude")),
        check_out_location=_point(r.get("check_out_latitude"), r.get("check_out_longitude")),
        distance_meters=r.get("distance_meters"),
        location_validated=as_optional_bool(r.get("location_validated")),
        check_out_distance_meters=r.get("check_out_distance_meters"),
        check_out_validated=as_optional_bool(r.get("check_out_validated")),
        hours_worked=r.get("hours_worked"),
        overtime_hours=r.get("overtime_hours"),
        is_locked=bool(r.get("is_locked")),
    )


def _lat_lon(check: GeofenceCheck) -> tuple[Optional[float], Optional[float]]:
    if check.location is None:
        return None, None
    return check.location.latitude, check.location.longitude


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_recent_for_employee(self, employee_id: int, limit: int) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s
                ORDER BY work_date DESC
                LIMIT %s
                """,
                (int(employee_id), int(limit)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def get_for_employee_and_date(self, employee_id: int, work_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE employee_id=%s AND work_date=%s",
                (int(employee_id), work_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def list_for_employee(self, *, employee_id: int, start: date, end: date) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM attendance_records
                WHERE employee_id=%s AND work_date BETWEEN %s AND %s
                ORDER BY work_date
                """,
                (int(employee_id), start, end),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def upsert_checkin(
        self,
        *,
        employee_id: int,
        work_date: date,
        check_in_time: datetime,
        geofence: GeofenceCheck,
    ) -> Optional[int]:
        lat, lon = _lat_lon(geofence)
        with db_cursor(self._conn_factory) as (_, cur):
            # LAST_INSERT_ID(expr) makes lastrowid valid on the update path too.
            # A locked (checked-out) row keeps every column as it was.
            cur.execute(
                """
                INSERT INTO attendance_records(
                    employee_id, work_date, status, check_in_time,
                    check_in_latitude, check_in_longitude, distance_meters, location_validated
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    attendance_id=LAST_INSERT_ID(attendance_id),
                    status=IF(is_locked, status, VALUES(status)),
                    check_in_time=IF(is_locked, check_in_time, VALUES(check_in_time)),
                    check_in_latitude=IF(is_locked, check_in_latitude, VALUES(check_in_latitude)),
                    check_in_longitude=IF(is_locked, check_in_longitude, VALUES(check_in_longitude)),
                    distance_meters=IF(is_locked, distance_meters, VALUES(distance_meters)),
                    location_validated=IF(is_locked, location_validated, VALUES(location_validated))
                """,
                (
                    int(employee_id),
                    work_date,
                    AttendanceStatus.CHECKED_IN.value,
                    check_in_time,
                    lat,
                    lon,
                    geofence.distance_meters,
                    geofence.validated,
                ),
            )
            attendance_id = int(cur.lastrowid)
            cur.execute("SELECT is_locked FROM attendance_records WHERE attendance_id=%s", (attendance_id,))
            r = fetchone(cur)
            if r is None or as_optional_bool(r.get("is_locked")):
                return None
            return attendance_id

    def update_checkout(
        self,
        *,
        attendance_id: int,
        check_out_time: datetime,
        geofence: GeofenceCheck,
        hours_worked: Decimal,
        overtime_hours: Decimal,
    ) -> bool:
        lat, lon = _lat_lon(geofence)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE attendance_records
                SET status=%s, check_out_time=%s,
                    check_out_latitude=%s, check_out_longitude=%s,
                    check_out_distance_meters=%s, check_out_validated=%s,
                    hours_worked=%s, overtime_hours=%s, is_locked=1
                WHERE attendance_id=%s AND status=%s AND is_locked=0
                """,
                (
                    AttendanceStatus.CHECKED_OUT.value,
                    check_out_time,
                    lat,
                    lon,
                    geofence.distance_meters,
                    geofence.validated,
                    hours_worked,
                    overtime_hours,
                    int(attendance_id),
                    AttendanceStatus.CHECKED_IN.value,
                ),
            )
            return cur.rowcount > 0
