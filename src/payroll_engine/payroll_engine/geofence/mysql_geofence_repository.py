from __future__ import annotations

from typing import Optional

from ..core.constants import DEFAULT_GEOFENCE_RADIUS_METERS
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import GeoPoint, InstitutionGeofence
from .repository import GeofenceRepository


class MySQLGeofenceRepository(GeofenceRepository):
    def __init__(self, conn_factory: DatabaseConnection, *, default_radius_meters: int = DEFAULT_GEOFENCE_RADIUS_METERS):
        self._conn_factory = conn_factory
        self._default_radius = int(default_radius_meters)

    def get_for_institution(self, institution_id: int) -> Optional[InstitutionGeofence]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT institution_id, gps_latitude, gps_longitude, attendance_radius_meters
                FROM institutions
                WHERE institution_id=%s
                """,
                (int(institution_id),),
            )
            r = fetchone(cur)
            if not r:
                return None

            location = None
            if r.get("gps_latitude") is not None and r.get("gps_longitude") is not None:
                location = GeoPoint(latitude=float(r["gps_latitude"]), longitude=float(r["gps_longitude"]))

            radius = r.get("attendance_radius_meters")
            return InstitutionGeofence(
                institution_id=int(r["institution_id"]),
                location=location,
                radius_meters=self._default_radius if radius is None else int(radius),
            )
