from __future__ import annotations

import logging
import math
from typing import Optional

from ..core.constants import EARTH_RADIUS_METERS
from ..core.exceptions import GpsNotConfiguredError, OutsideGeofenceError, ValidationError
from .model import GeofenceCheck, GeoPoint, InstitutionGeofence

logger = logging.getLogger(__name__)


def distance(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters (haversine, mean Earth radius)."""
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    d_lat = lat2 - lat1
    d_lon = math.radians(b.longitude - a.longitude)

    h = math.sin(d_lat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(d_lon / 2) ** 2
    return 2 * EARTH_RADIUS_METERS * math.asin(min(1.0, math.sqrt(h)))


def is_within_radius(distance_meters: float, radius_meters: float) -> bool:
    return distance_meters <= radius_meters


class GeofenceValidator:
    """Validates a reported position against an institution's geofence."""

    def __init__(self, *, enforce: bool = False):
        self._enforce = bool(enforce)

    def check(
        self,
        *,
        institution: Optional[InstitutionGeofence],
        location: Optional[GeoPoint],
        skip_gps: bool = False,
    ) -> GeofenceCheck:
        if skip_gps or institution is None or institution.gps_disabled:
            return GeofenceCheck(distance_meters=None, validated=None)

        if not institution.has_coordinates:
            raise GpsNotConfiguredError("Institution GPS coordinates are not configured")
        if location is None:
            raise ValidationError("Device location is required for GPS check-in")

        meters = distance(location, institution.location)  # type: ignore[arg-type]
        inside = is_within_radius(meters, institution.radius_meters)
        if not inside:
            if self._enforce:
                raise OutsideGeofenceError(
                    f"Location is {round(meters)}m from institution (allowed {institution.radius_meters}m)"
                )
            logger.info(
                "check outside geofence institution=%s distance=%sm radius=%sm",
                institution.institution_id,
                round(meters),
                institution.radius_meters,
            )

        return GeofenceCheck(distance_meters=int(round(meters)), validated=inside, location=location)
