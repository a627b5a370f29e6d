from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import EmployeeProfile


class EmployeeRepository(Protocol):
    """Repository interface for employee profiles.

    Note (DIP): services depend on this interface, not on a concrete DB.
    """

    def get_by_id(self, employee_id: int) -> Optional[EmployeeProfile]:
        raise NotImplementedError

    def list_active(self) -> Sequence[EmployeeProfile]:
        raise NotImplementedError
