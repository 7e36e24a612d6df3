"""Permission entities."""

from .permission import (
    PermissionSource,
    UserPermission,
    RolePermission,
    EffectivePermission,
    ResourcePermissions,
)

__all__ = [
    "PermissionSource",
    "UserPermission",
    "RolePermission",
    "EffectivePermission",
    "ResourcePermissions",
]
