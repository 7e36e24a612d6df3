"""Grant rows and the derived effective permission.

A grant authorizes a subject (user or role) to perform ``action`` on
``resource_id``. Grants are unique per (tenant, subject, resource, action).
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from ....utils.timezone import utc_now


class PermissionSource(str, Enum):
    """Where an effective permission came from."""
    USER = "user"
    ROLE = "role"


@dataclass(frozen=True)
class UserPermission:
    tenant_id: str
    user_id: str
    resource_id: str
    action: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class RolePermission:
    tenant_id: str
    role_id: str
    resource_id: str
    action: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class EffectivePermission:
    """A grant reachable by a user, tagged with its source.

    Always derived from current grant state; never persisted or cached.
    """

    resource_id: str
    action: str
    source: PermissionSource
    role_id: Optional[str] = None

    @classmethod
    def from_user_permission(cls, grant: UserPermission) -> "EffectivePermission":
        return cls(resource_id=grant.resource_id, action=grant.action, source=PermissionSource.USER)

    @classmethod
    def from_role_permission(cls, grant: RolePermission) -> "EffectivePermission":
        return cls(
            resource_id=grant.resource_id,
            action=grant.action,
            source=PermissionSource.ROLE,
            role_id=grant.role_id,
        )

    def sort_key(self):
        """Users first by (resource, action), then roles by (role, resource, action)."""
        if self.source is PermissionSource.USER:
            return (0, "", self.resource_id, self.action)
        return (1, self.role_id or "", self.resource_id, self.action)


@dataclass(frozen=True)
class ResourcePermissions:
    """Every grant naming one resource, split by subject kind."""

    resource_id: str
    user_permissions: List[UserPermission] = field(default_factory=list)
    role_permissions: List[RolePermission] = field(default_factory=list)
