"""Base exceptions for permiso.

All permiso errors inherit from PermisoError and carry an error code and a
details mapping. Internal layers never raise these for expected conditions;
they travel inside ``Result.error`` and only the API boundary decides how to
present them.
"""

from typing import Any, Dict, Optional


class PermisoError(Exception):
    """Base exception for all permiso errors."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, error_code={self.error_code!r})"
