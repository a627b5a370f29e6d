from __future__ import annotations

from typing import Optional, Protocol

from .model import InstitutionGeofence


class GeofenceRepository(Protocol):
    def get_for_institution(self, institution_id: int) -> Optional[InstitutionGeofence]:
        raise NotImplementedError
