"""Boundary helpers mapping permiso errors to transport responses.

The transport layer itself lives outside this package; these helpers keep
the kind-to-status table and the sanitising rules in one place.
"""

from typing import Any, Dict, Type

from .base import PermisoError
from .domain import (
    ConflictError,
    IsolationViolationError,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
    ValidationError,
)


HTTP_STATUS_MAP: Dict[Type[PermisoError], int] = {
    ValidationError: 400,
    IsolationViolationError: 403,
    NotFoundError: 404,
    ConflictError: 409,
    PreconditionFailedError: 412,
    StorageError: 500,
    PermisoError: 500,
}

GENERIC_STORAGE_MESSAGE = "Internal storage error"


def get_http_status_code(exception: Exception) -> int:
    """Get HTTP status code for an exception, walking its class hierarchy."""
    for exc_class in type(exception).__mro__:
        if exc_class in HTTP_STATUS_MAP:
            return HTTP_STATUS_MAP[exc_class]
    return 500


def create_error_response(exception: PermisoError) -> Dict[str, Any]:
    """Create a standardized error response from a permiso error.

    Storage failures are reported by kind only; their message and details
    stay in the logs.
    """
    if isinstance(exception, StorageError):
        message = GENERIC_STORAGE_MESSAGE
        details: Dict[str, Any] = {}
    else:
        message = exception.message
        details = exception.details

    return {
        "error": {
            "code": exception.error_code,
            "message": message,
            "details": details,
            "type": exception.__class__.__name__,
        }
    }
