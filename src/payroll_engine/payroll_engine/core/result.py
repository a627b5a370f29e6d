from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Optional, TypeVar

from .exceptions import DomainError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Typed outcome returned across service boundaries.

    Services raise DomainError internally; public operations convert it into a
    failed Result so callers never use exceptions for control flow.
    """

    value: Optional[T] = None
    error: Optional[DomainError] = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T, *, warnings: tuple[str, ...] = ()) -> "Result[T]":
        return cls(value=value, warnings=tuple(warnings))

    @classmethod
    def failure(cls, error: DomainError) -> "Result[T]":
        return cls(error=error)
