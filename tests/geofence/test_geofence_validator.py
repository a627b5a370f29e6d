from __future__ import annotations

import pytest

from src.payroll_engine.payroll_engine.core.exceptions import GpsNotConfiguredError, OutsideGeofenceError, ValidationError
from src.payroll_engine.payroll_engine.geofence.model import GeoPoint, InstitutionGeofence
from src.payroll_engine.payroll_engine.geofence.validator import GeofenceValidator, distance, is_within_radius

CAMPUS = GeoPoint(latitude=12.9715987, longitude=77.5945627)


def _institution(radius: int = 1500, location=CAMPUS) -> InstitutionGeofence:
    return InstitutionGeofence(institution_id=1, location=location, radius_meters=radius)


def test_distance_to_self_is_zero():
    assert distance(CAMPUS, CAMPUS) == 0


def test_distance_is_symmetric_and_plausible():
    # One degree of latitude is roughly 111.2 km.
    a = GeoPoint(0.0, 10.0)
    b = GeoPoint(1.0, 10.0)
    assert distance(a, b) == pytest.approx(111_195, rel=1e-3)
    assert distance(a, b) == pytest.approx(distance(b, a))


def test_is_within_radius_includes_the_boundary():
    assert is_within_radius(1500, 1500) is True
    assert is_within_radius(1499.9, 1500) is True
    assert is_within_radius(1500.1, 1500) is False


def test_inside_radius_is_validated():
    nearby = GeoPoint(latitude=12.9725, longitude=77.5945627)  # ~100m north
    check = GeofenceValidator().check(institution=_institution(), location=nearby)

    assert check.validated is True
    assert 90 <= check.distance_meters <= 110


def test_outside_radius_is_recorded_not_refused():
    far = GeoPoint(latitude=13.0, longitude=77.5945627)
    check = GeofenceValidator().check(institution=_institution(), location=far)

    assert check.validated is False
    assert check.distance_meters > 1500


def test_outside_radius_refused_when_enforced():
    far = GeoPoint(latitude=13.0, longitude=77.5945627)
    with pytest.raises(OutsideGeofenceError):
        GeofenceValidator(enforce=True).check(institution=_institution(), location=far)


def test_skip_gps_is_not_applicable_regardless_of_coordinates():
    far = GeoPoint(latitude=-33.0, longitude=151.0)
    check = GeofenceValidator(enforce=True).check(institution=_institution(), location=far, skip_gps=True)

    assert check.validated is None
    assert check.distance_meters is None
    assert check.skipped


def test_zero_radius_disables_gps():
    check = GeofenceValidator().check(institution=_institution(radius=0, location=None), location=None)
    assert check.validated is None


def test_gps_enabled_without_coordinates_is_not_configured():
    with pytest.raises(GpsNotConfiguredError):
        GeofenceValidator().check(institution=_institution(location=GeoPoint(0.0, 0.0)), location=CAMPUS)


def test_missing_device_location_is_a_validation_error():
    with pytest.raises(ValidationError):
        GeofenceValidator().check(institution=_institution(), location=None)
