"""Permiso - multi-tenant permission resolution engine.

Stores tenants, users, roles, resources and grants of {action on resource}
to users or roles, and answers whether a user holds a permission directly
or through a role. Logging is not configured on import; embedding
applications call ``permiso.config.setup_logging()`` once at startup.
"""

from .__version__ import __version__

from .core.result import Result
from .core.exceptions import (
    PermisoError,
    NotFoundError,
    ValidationError,
    PreconditionFailedError,
    ConflictError,
    StorageError,
    IsolationViolationError,
    get_http_status_code,
    create_error_response,
)
from .core.shared import RequestContext

from .config import PermisoSettings, get_settings, setup_logging

from .features.tenants.entities import Tenant
from .features.users.entities import User, UserRole
from .features.roles.entities import Role
from .features.resources.entities import Resource
from .features.properties.entities import OwnerKind, OwnerRef, Property, PropertyInput
from .features.permissions.entities import (
    PermissionSource,
    UserPermission,
    RolePermission,
    EffectivePermission,
    ResourcePermissions,
)

from .repositories import (
    InMemoryStore,
    AsyncPGStore,
    TenantScopedRepository,
    create_repositories,
)
from .database import DatabaseManager, ensure_schema

from .features.tenants.services import tenant_service
from .features.users.services import user_service
from .features.roles.services import role_service
from .features.resources.services import resource_service
from .features.permissions.services import permission_resolver, permission_service

__all__ = [
    "__version__",
    # Results and errors
    "Result",
    "PermisoError",
    "NotFoundError",
    "ValidationError",
    "PreconditionFailedError",
    "ConflictError",
    "StorageError",
    "IsolationViolationError",
    "get_http_status_code",
    "create_error_response",
    # Context and config
    "RequestContext",
    "PermisoSettings",
    "get_settings",
    "setup_logging",
    # Entities
    "Tenant",
    "User",
    "UserRole",
    "Role",
    "Resource",
    "OwnerKind",
    "OwnerRef",
    "Property",
    "PropertyInput",
    "PermissionSource",
    "UserPermission",
    "RolePermission",
    "EffectivePermission",
    "ResourcePermissions",
    # Storage
    "InMemoryStore",
    "AsyncPGStore",
    "TenantScopedRepository",
    "create_repositories",
    "DatabaseManager",
    "ensure_schema",
    # Services
    "tenant_service",
    "user_service",
    "role_service",
    "resource_service",
    "permission_resolver",
    "permission_service",
]
