"""Error kinds reported by the stores, the resolution engine and orchestration."""

from typing import Any, Dict, Optional

from .base import PermisoError


class NotFoundError(PermisoError):
    """Raised when an entity is absent on a point lookup."""

    def __init__(self, entity: str, entity_id: str, details: Optional[Dict[str, Any]] = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(
            f"{entity} '{entity_id}' not found",
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id, **(details or {})},
        )


class ValidationError(PermisoError):
    """Raised when input is malformed or a required field is missing."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="VALIDATION_ERROR", details=details)


class PreconditionFailedError(PermisoError):
    """Raised when a safety key does not match the deletion target."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="PRECONDITION_FAILED", details=details)


class ConflictError(PermisoError):
    """Raised when a create collides with an existing unique key."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="CONFLICT", details=details)


class StorageError(PermisoError):
    """Raised when the underlying store faults.

    The driver error is kept on ``cause`` for logging only.
    """

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cause = cause
        super().__init__(message, error_code="STORAGE_ERROR", details=details)


class IsolationViolationError(PermisoError):
    """Raised when a call lacks the tenant filter it requires.

    Also covers ROOT context used outside its allow-list and a tenant context
    reaching into another tenant.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code="ISOLATION_VIOLATION", details=details)
