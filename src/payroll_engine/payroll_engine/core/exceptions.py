class DomainError(Exception):
    """Base exception for business rule violations."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    code = "validation_error"


class NotFoundError(DomainError):
    code = "not_found"


class AuthorizationError(DomainError):
    """Raised when an actor may not perform a transition."""

    code = "forbidden"


class OverlappingLeaveError(ValidationError):
    code = "overlapping_leave"


class UnassignedSubstituteError(ValidationError):
    """A scheduled teaching slot inside the leave range has no substitute."""

    code = "unassigned_substitute"


class GpsNotConfiguredError(ValidationError):
    """GPS validation is enabled but the institution has no coordinates."""

    code = "gps_not_configured"


class OutsideGeofenceError(ValidationError):
    code = "outside_geofence"


class ConcurrentUpdateError(DomainError):
    """A conditional write lost the race against another writer."""

    code = "concurrent_update"
