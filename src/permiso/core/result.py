"""Typed success/failure result shared by every layer.

Stores, the repository facade, the resolution engine and orchestration all
return ``Result`` instead of raising for expected conditions.
"""

from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from .exceptions import PermisoError

T = TypeVar("T")
U = TypeVar("U")


@dataclass(frozen=True)
class Result(Generic[T]):
    """Either ``success`` with ``data`` or failure with ``error``."""

    success: bool
    data: Optional[T] = None
    error: Optional[PermisoError] = None

    @classmethod
    def ok(cls, data: Optional[T] = None) -> "Result[T]":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: PermisoError) -> "Result[T]":
        if error is None:
            raise TypeError("Result.fail requires an error")
        return cls(success=False, error=error)

    @property
    def failed(self) -> bool:
        return not self.success

    def unwrap(self) -> T:
        """Return data, or raise the carried error.

        Meant for the transport boundary and tests; internal layers branch on
        ``success`` instead.
        """
        if not self.success:
            raise self.error
        return self.data

    def map(self, fn: Callable[[T], U]) -> "Result[U]":
        """Apply ``fn`` to the data of a successful result."""
        if not self.success:
            return Result(success=False, error=self.error)
        return Result(success=True, data=fn(self.data))
