"""Tenant-scoped repository facade.

The single gateway to storage for the rest of permiso. Every method outside
the tenant-record allow-list takes a tenant id as its first argument and
refuses to touch the store when it is missing or empty. The store methods it
forwards to filter by that id; a new method added here without the
``tenant_scoped`` guard is an isolation bug.
"""

import functools
import logging
from typing import List, Optional, Sequence

from ..core.exceptions import IsolationViolationError
from ..core.result import Result
from ..features.permissions.entities import RolePermission, UserPermission, ResourcePermissions
from ..features.properties.entities import OwnerKind, OwnerRef, Property, PropertyInput
from ..features.resources.entities import Resource
from ..features.roles.entities import Role
from ..features.tenants.entities import Tenant
from ..features.users.entities import User, UserRole
from .protocols import PermisoStore

logger = logging.getLogger(__name__)


def tenant_scoped(method):
    """Fail closed when the wrapped call receives no tenant id."""

    @functools.wraps(method)
    async def wrapper(self, tenant_id, *args, **kwargs):
        if not isinstance(tenant_id, str) or not tenant_id:
            logger.warning(f"Rejected {method.__name__} without tenant id")
            return Result.fail(IsolationViolationError(
                f"{method.__name__} requires a tenant id",
                details={"operation": method.__name__},
            ))
        return await method(self, tenant_id, *args, **kwargs)

    return wrapper


class TenantScopedRepository:
    """Facade over a PermisoStore that enforces tenant filtering."""

    def __init__(self, store: PermisoStore):
        self.store = store

    # Tenants (ROOT allow-list)

    async def create_tenant(self, tenant: Tenant, properties: Sequence[PropertyInput] = ()) -> Result[Tenant]:
        return await self.store.create_tenant(tenant, properties)

    async def get_tenant(self, tenant_id: str) -> Result[Optional[Tenant]]:
        return await self.store.get_tenant(tenant_id)

    async def list_tenants(self, name: Optional[str] = None) -> Result[List[Tenant]]:
        return await self.store.list_tenants(name)

    async def update_tenant(
        self, tenant_id: str, name: Optional[str] = None, description: Optional[str] = None
    ) -> Result[Optional[Tenant]]:
        return await self.store.update_tenant(tenant_id, name, description)

    async def delete_tenant(self, tenant_id: str) -> Result[bool]:
        return await self.store.delete_tenant(tenant_id)

    # Users

    @tenant_scoped
    async def create_user(
        self,
        tenant_id: str,
        user: User,
        properties: Sequence[PropertyInput] = (),
        role_ids: Sequence[str] = (),
    ) -> Result[User]:
        if user.tenant_id != tenant_id:
            return Result.fail(_cross_tenant("create_user", tenant_id, user.tenant_id))
        return await self.store.create_user(user, properties, role_ids)

    @tenant_scoped
    async def get_user(self, tenant_id: str, user_id: str) -> Result[Optional[User]]:
        return await self.store.get_user(tenant_id, user_id)

    @tenant_scoped
    async def get_users_by_identity(
        self, tenant_id: str, identity_provider: str, identity_provider_user_id: str
    ) -> Result[List[User]]:
        return await self.store.get_users_by_identity(tenant_id, identity_provider, identity_provider_user_id)

    @tenant_scoped
    async def list_users(self, tenant_id: str, identity_provider: Optional[str] = None) -> Result[List[User]]:
        return await self.store.list_users(tenant_id, identity_provider)

    @tenant_scoped
    async def update_user(
        self,
        tenant_id: str,
        user_id: str,
        identity_provider: Optional[str] = None,
        identity_provider_user_id: Optional[str] = None,
    ) -> Result[Optional[User]]:
        return await self.store.update_user(tenant_id, user_id, identity_provider, identity_provider_user_id)

    @tenant_scoped
    async def delete_user(self, tenant_id: str, user_id: str) -> Result[bool]:
        return await self.store.delete_user(tenant_id, user_id)

    # Roles

    @tenant_scoped
    async def create_role(
        self, tenant_id: str, role: Role, properties: Sequence[PropertyInput] = ()
    ) -> Result[Role]:
        if role.tenant_id != tenant_id:
            return Result.fail(_cross_tenant("create_role", tenant_id, role.tenant_id))
        return await self.store.create_role(role, properties)

    @tenant_scoped
    async def get_role(self, tenant_id: str, role_id: str) -> Result[Optional[Role]]:
        return await self.store.get_role(tenant_id, role_id)

    @tenant_scoped
    async def list_roles(self, tenant_id: str, name: Optional[str] = None) -> Result[List[Role]]:
        return await self.store.list_roles(tenant_id, name)

    @tenant_scoped
    async def update_role(
        self,
        tenant_id: str,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Role]]:
        return await self.store.update_role(tenant_id, role_id, name, description)

    @tenant_scoped
    async def delete_role(self, tenant_id: str, role_id: str) -> Result[bool]:
        return await self.store.delete_role(tenant_id, role_id)

    # Resources

    @tenant_scoped
    async def create_resource(
        self, tenant_id: str, resource: Resource, properties: Sequence[PropertyInput] = ()
    ) -> Result[Resource]:
        if resource.tenant_id != tenant_id:
            return Result.fail(_cross_tenant("create_resource", tenant_id, resource.tenant_id))
        return await self.store.create_resource(resource, properties)

    @tenant_scoped
    async def get_resource(self, tenant_id: str, resource_id: str) -> Result[Optional[Resource]]:
        return await self.store.get_resource(tenant_id, resource_id)

    @tenant_scoped
    async def list_resources(self, tenant_id: str, id_prefix: Optional[str] = None) -> Result[List[Resource]]:
        return await self.store.list_resources(tenant_id, id_prefix)

    @tenant_scoped
    async def update_resource(
        self,
        tenant_id: str,
        resource_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Resource]]:
        return await self.store.update_resource(tenant_id, resource_id, name, description)

    @tenant_scoped
    async def delete_resource(self, tenant_id: str, resource_id: str) -> Result[bool]:
        return await self.store.delete_resource(tenant_id, resource_id)

    @tenant_scoped
    async def delete_resources_by_id_prefix(self, tenant_id: str, id_prefix: str) -> Result[int]:
        return await self.store.delete_resources_by_id_prefix(tenant_id, id_prefix)

    # Properties

    @tenant_scoped
    async def list_properties(self, tenant_id: str, owner: OwnerRef) -> Result[List[Property]]:
        if _foreign_tenant_owner(tenant_id, owner):
            return Result.fail(_cross_tenant("list_properties", tenant_id, owner.id))
        return await self.store.list_properties(tenant_id, owner)

    @tenant_scoped
    async def get_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[Optional[Property]]:
        if _foreign_tenant_owner(tenant_id, owner):
            return Result.fail(_cross_tenant("get_property", tenant_id, owner.id))
        return await self.store.get_property(tenant_id, owner, name)

    @tenant_scoped
    async def set_property(self, tenant_id: str, owner: OwnerRef, prop: PropertyInput) -> Result[Property]:
        if _foreign_tenant_owner(tenant_id, owner):
            return Result.fail(_cross_tenant("set_property", tenant_id, owner.id))
        return await self.store.set_property(tenant_id, owner, prop)

    @tenant_scoped
    async def delete_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[bool]:
        if _foreign_tenant_owner(tenant_id, owner):
            return Result.fail(_cross_tenant("delete_property", tenant_id, owner.id))
        return await self.store.delete_property(tenant_id, owner, name)

    # Memberships

    @tenant_scoped
    async def assign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[UserRole]:
        return await self.store.assign_user_role(tenant_id, user_id, role_id)

    @tenant_scoped
    async def unassign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[bool]:
        return await self.store.unassign_user_role(tenant_id, user_id, role_id)

    @tenant_scoped
    async def list_user_role_ids(self, tenant_id: str, user_id: str) -> Result[List[str]]:
        return await self.store.list_user_role_ids(tenant_id, user_id)

    @tenant_scoped
    async def list_role_user_ids(self, tenant_id: str, role_id: str) -> Result[List[str]]:
        return await self.store.list_role_user_ids(tenant_id, role_id)

    # Grants

    @tenant_scoped
    async def grant_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[UserPermission]:
        return await self.store.grant_user_permission(tenant_id, user_id, resource_id, action)

    @tenant_scoped
    async def revoke_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        return await self.store.revoke_user_permission(tenant_id, user_id, resource_id, action)

    @tenant_scoped
    async def list_user_permissions(
        self,
        tenant_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[UserPermission]]:
        return await self.store.list_user_permissions(tenant_id, user_id, resource_id, action)

    @tenant_scoped
    async def list_user_permissions_by_prefix(
        self, tenant_id: str, user_id: str, resource_id_prefix: str
    ) -> Result[List[UserPermission]]:
        return await self.store.list_user_permissions_by_prefix(tenant_id, user_id, resource_id_prefix)

    @tenant_scoped
    async def grant_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[RolePermission]:
        return await self.store.grant_role_permission(tenant_id, role_id, resource_id, action)

    @tenant_scoped
    async def revoke_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        return await self.store.revoke_role_permission(tenant_id, role_id, resource_id, action)

    @tenant_scoped
    async def list_role_permissions(
        self,
        tenant_id: str,
        role_ids: Sequence[str],
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[RolePermission]]:
        return await self.store.list_role_permissions(tenant_id, role_ids, resource_id, action)

    @tenant_scoped
    async def list_role_permissions_by_prefix(
        self, tenant_id: str, role_ids: Sequence[str], resource_id_prefix: str
    ) -> Result[List[RolePermission]]:
        return await self.store.list_role_permissions_by_prefix(tenant_id, role_ids, resource_id_prefix)

    @tenant_scoped
    async def list_permissions_by_resource(self, tenant_id: str, resource_id: str) -> Result[ResourcePermissions]:
        return await self.store.list_permissions_by_resource(tenant_id, resource_id)


def _foreign_tenant_owner(tenant_id: str, owner: OwnerRef) -> bool:
    return owner.kind is OwnerKind.TENANT and owner.id != tenant_id


def _cross_tenant(operation: str, tenant_id: str, target: str) -> IsolationViolationError:
    logger.warning(f"Rejected cross-tenant {operation}: scope {tenant_id}, target {target}")
    return IsolationViolationError(
        f"{operation} cannot reach outside tenant '{tenant_id}'",
        details={"operation": operation, "tenant_id": tenant_id, "target": target},
    )
