from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class GeoPoint:
    """WGS-84 coordinate in decimal degrees."""

    latitude: float
    longitude: float

    @property
    def is_unset(self) -> bool:
        return not self.latitude and not self.longitude


@dataclass(frozen=True)
class InstitutionGeofence:
    institution_id: int
    location: Optional[GeoPoint]
    radius_meters: int

    @property
    def gps_disabled(self) -> bool:
        # A zero radius is the institution-level "no GPS" toggle.
        return not self.radius_meters or self.radius_meters <= 0

    @property
    def has_coordinates(self) -> bool:
        return self.location is not None and not self.location.is_unset


@dataclass(frozen=True)
class GeofenceCheck:
    """Outcome of one check-in/out validation.

    validated is None when validation was skipped (not applicable), which is
    different from False (validated and found outside the radius).
    """

    distance_meters: Optional[int]
    validated: Optional[bool]
    location: Optional[GeoPoint] = None

    @property
    def skipped(self) -> bool:
        return self.validated is None
