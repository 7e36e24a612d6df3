"""Storage contracts for permiso.

Two protocols split the durable state: entity records with their property
bags, and relationship rows (memberships and grants). Both are pure storage:
no business rules, every method takes the tenant id it filters by, and every
method returns a ``Result`` rather than raising for expected conditions.
"""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from ..core.result import Result
from ..features.permissions.entities import RolePermission, UserPermission, ResourcePermissions
from ..features.properties.entities import OwnerRef, Property, PropertyInput
from ..features.resources.entities import Resource
from ..features.roles.entities import Role
from ..features.tenants.entities import Tenant
from ..features.users.entities import User, UserRole


@runtime_checkable
class EntityStore(Protocol):
    """Protocol for tenant, user, role, resource and property records."""

    # Tenants

    async def create_tenant(
        self, tenant: Tenant, properties: Sequence[PropertyInput] = ()
    ) -> Result[Tenant]:
        """Insert a tenant and its initial properties atomically."""
        ...

    async def get_tenant(self, tenant_id: str) -> Result[Optional[Tenant]]:
        ...

    async def list_tenants(self, name: Optional[str] = None) -> Result[List[Tenant]]:
        ...

    async def update_tenant(
        self, tenant_id: str, name: Optional[str] = None, description: Optional[str] = None
    ) -> Result[Optional[Tenant]]:
        """Update the given fields; ``data`` is None when the tenant is absent."""
        ...

    async def delete_tenant(self, tenant_id: str) -> Result[bool]:
        """Delete a tenant and every row it owns atomically."""
        ...

    # Users

    async def create_user(
        self,
        user: User,
        properties: Sequence[PropertyInput] = (),
        role_ids: Sequence[str] = (),
    ) -> Result[User]:
        ...

    async def get_user(self, tenant_id: str, user_id: str) -> Result[Optional[User]]:
        ...

    async def get_users_by_identity(
        self, tenant_id: str, identity_provider: str, identity_provider_user_id: str
    ) -> Result[List[User]]:
        ...

    async def list_users(
        self, tenant_id: str, identity_provider: Optional[str] = None
    ) -> Result[List[User]]:
        ...

    async def update_user(
        self,
        tenant_id: str,
        user_id: str,
        identity_provider: Optional[str] = None,
        identity_provider_user_id: Optional[str] = None,
    ) -> Result[Optional[User]]:
        ...

    async def delete_user(self, tenant_id: str, user_id: str) -> Result[bool]:
        """Delete a user with its memberships, grants and properties."""
        ...

    # Roles

    async def create_role(
        self, role: Role, properties: Sequence[PropertyInput] = ()
    ) -> Result[Role]:
        ...

    async def get_role(self, tenant_id: str, role_id: str) -> Result[Optional[Role]]:
        ...

    async def list_roles(self, tenant_id: str, name: Optional[str] = None) -> Result[List[Role]]:
        ...

    async def update_role(
        self,
        tenant_id: str,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Role]]:
        ...

    async def delete_role(self, tenant_id: str, role_id: str) -> Result[bool]:
        """Delete a role with its memberships, grants and properties."""
        ...

    # Resources

    async def create_resource(
        self, resource: Resource, properties: Sequence[PropertyInput] = ()
    ) -> Result[Resource]:
        ...

    async def get_resource(self, tenant_id: str, resource_id: str) -> Result[Optional[Resource]]:
        ...

    async def list_resources(
        self, tenant_id: str, id_prefix: Optional[str] = None
    ) -> Result[List[Resource]]:
        ...

    async def update_resource(
        self,
        tenant_id: str,
        resource_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Resource]]:
        ...

    async def delete_resource(self, tenant_id: str, resource_id: str) -> Result[bool]:
        """Delete a resource with every grant naming it and its properties."""
        ...

    async def delete_resources_by_id_prefix(self, tenant_id: str, id_prefix: str) -> Result[int]:
        """Delete every resource whose id starts with ``id_prefix``.

        Grants naming those resources and their properties go in the same
        transaction. ``data`` is the number of resources removed.
        """
        ...

    # Properties

    async def list_properties(self, tenant_id: str, owner: OwnerRef) -> Result[List[Property]]:
        ...

    async def get_property(
        self, tenant_id: str, owner: OwnerRef, name: str
    ) -> Result[Optional[Property]]:
        ...

    async def set_property(
        self, tenant_id: str, owner: OwnerRef, prop: PropertyInput
    ) -> Result[Property]:
        """Insert or replace the property keyed by (owner, name)."""
        ...

    async def delete_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[bool]:
        ...


@runtime_checkable
class RelationshipStore(Protocol):
    """Protocol for membership and grant rows."""

    async def assign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[UserRole]:
        """Idempotent membership insert."""
        ...

    async def unassign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[bool]:
        ...

    async def list_user_role_ids(self, tenant_id: str, user_id: str) -> Result[List[str]]:
        ...

    async def list_role_user_ids(self, tenant_id: str, role_id: str) -> Result[List[str]]:
        ...

    async def grant_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[UserPermission]:
        """Idempotent grant insert; returns the stored row."""
        ...

    async def revoke_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        ...

    async def list_user_permissions(
        self,
        tenant_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[UserPermission]]:
        ...

    async def list_user_permissions_by_prefix(
        self, tenant_id: str, user_id: str, resource_id_prefix: str
    ) -> Result[List[UserPermission]]:
        ...

    async def grant_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[RolePermission]:
        ...

    async def revoke_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        ...

    async def list_role_permissions(
        self,
        tenant_id: str,
        role_ids: Sequence[str],
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[RolePermission]]:
        ...

    async def list_role_permissions_by_prefix(
        self, tenant_id: str, role_ids: Sequence[str], resource_id_prefix: str
    ) -> Result[List[RolePermission]]:
        ...

    async def list_permissions_by_resource(
        self, tenant_id: str, resource_id: str
    ) -> Result[ResourcePermissions]:
        ...


@runtime_checkable
class PermisoStore(EntityStore, RelationshipStore, Protocol):
    """A backend providing both storage contracts."""
    ...
