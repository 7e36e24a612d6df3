"""Exception hierarchy for permiso."""

from .base import PermisoError
from .domain import (
    NotFoundError,
    ValidationError,
    PreconditionFailedError,
    ConflictError,
    StorageError,
    IsolationViolationError,
)
from .http_mapping import (
    HTTP_STATUS_MAP,
    get_http_status_code,
    create_error_response,
)

__all__ = [
    "PermisoError",
    "NotFoundError",
    "ValidationError",
    "PreconditionFailedError",
    "ConflictError",
    "StorageError",
    "IsolationViolationError",
    "HTTP_STATUS_MAP",
    "get_http_status_code",
    "create_error_response",
]
