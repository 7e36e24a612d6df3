"""In-memory store implementing both storage contracts.

Process-local and non-durable. It backs the test suite and embedded use,
and follows the same cascade and uniqueness rules as the asyncpg store.
Multi-row mutations run under a single ``asyncio.Lock`` so no reader sees a
half-applied cascade.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..core.result import Result
from ..features.permissions.entities import RolePermission, UserPermission, ResourcePermissions
from ..features.properties.entities import (
    OwnerKind,
    OwnerRef,
    Property,
    PropertyInput,
    normalize_property_value,
)
from ..features.resources.entities import Resource
from ..features.roles.entities import Role
from ..features.tenants.entities import Tenant
from ..features.users.entities import User, UserRole
from ..utils.timezone import utc_now

logger = logging.getLogger(__name__)

EntityKey = Tuple[str, str]
PropertyKey = Tuple[str, str, str, str]


class InMemoryStore:
    """Dictionary-backed implementation of PermisoStore."""

    def __init__(self):
        self._lock = asyncio.Lock()
        self._tenants: Dict[str, Tenant] = {}
        self._users: Dict[EntityKey, User] = {}
        self._roles: Dict[EntityKey, Role] = {}
        self._resources: Dict[EntityKey, Resource] = {}
        self._user_roles: Dict[Tuple[str, str, str], UserRole] = {}
        self._user_permissions: Dict[Tuple[str, str, str, str], UserPermission] = {}
        self._role_permissions: Dict[Tuple[str, str, str, str], RolePermission] = {}
        self._properties: Dict[PropertyKey, Property] = {}

    # Helpers

    @staticmethod
    def _property_key(tenant_id: str, owner: OwnerRef, name: str) -> PropertyKey:
        return (owner.kind.value, tenant_id, owner.id, name)

    @staticmethod
    def _normalized(properties: Sequence[PropertyInput]) -> Result[List[PropertyInput]]:
        # Checked before any write so a rejected value leaves nothing behind
        try:
            return Result.ok([replace(p, value=normalize_property_value(p.value)) for p in properties])
        except ValidationError as e:
            return Result.fail(e)

    def _put_properties(self, tenant_id: str, owner: OwnerRef, properties: Sequence[PropertyInput]) -> None:
        now = utc_now()
        for prop in properties:
            self._properties[self._property_key(tenant_id, owner, prop.name)] = Property(
                owner=owner,
                name=prop.name,
                value=prop.value,
                hidden=prop.hidden,
                created_at=now,
            )

    def _owner_exists(self, tenant_id: str, owner: OwnerRef) -> bool:
        if owner.kind is OwnerKind.TENANT:
            return owner.id == tenant_id and tenant_id in self._tenants
        table = {
            OwnerKind.USER: self._users,
            OwnerKind.ROLE: self._roles,
            OwnerKind.RESOURCE: self._resources,
        }[owner.kind]
        return (tenant_id, owner.id) in table

    def _drop_properties(self, tenant_id: str, owner: Optional[OwnerRef] = None) -> None:
        for key in list(self._properties):
            kind, key_tenant, owner_id, _ = key
            if key_tenant != tenant_id:
                continue
            if owner is None or (kind == owner.kind.value and owner_id == owner.id):
                del self._properties[key]

    def _drop_grants_for_resources(self, tenant_id: str, resource_ids: set) -> None:
        for key in [k for k in self._user_permissions if k[0] == tenant_id and k[2] in resource_ids]:
            del self._user_permissions[key]
        for key in [k for k in self._role_permissions if k[0] == tenant_id and k[2] in resource_ids]:
            del self._role_permissions[key]

    # Tenants

    async def create_tenant(self, tenant: Tenant, properties: Sequence[PropertyInput] = ()) -> Result[Tenant]:
        normalized = self._normalized(properties)
        if not normalized.success:
            return normalized
        async with self._lock:
            if tenant.id in self._tenants:
                return Result.fail(ConflictError(f"Tenant '{tenant.id}' already exists", details={"id": tenant.id}))
            stored = replace(tenant, properties=[])
            self._tenants[tenant.id] = stored
            self._put_properties(tenant.id, OwnerRef.tenant(tenant.id), normalized.data)
        return Result.ok(stored)

    async def get_tenant(self, tenant_id: str) -> Result[Optional[Tenant]]:
        return Result.ok(self._tenants.get(tenant_id))

    async def list_tenants(self, name: Optional[str] = None) -> Result[List[Tenant]]:
        tenants = [t for t in self._tenants.values() if name is None or t.name == name]
        return Result.ok(sorted(tenants, key=lambda t: t.id))

    async def update_tenant(
        self, tenant_id: str, name: Optional[str] = None, description: Optional[str] = None
    ) -> Result[Optional[Tenant]]:
        async with self._lock:
            tenant = self._tenants.get(tenant_id)
            if tenant is None:
                return Result.ok(None)
            updated = replace(
                tenant,
                name=name if name is not None else tenant.name,
                description=description if description is not None else tenant.description,
                updated_at=utc_now(),
            )
            self._tenants[tenant_id] = updated
        return Result.ok(updated)

    async def delete_tenant(self, tenant_id: str) -> Result[bool]:
        async with self._lock:
            if tenant_id not in self._tenants:
                return Result.ok(False)
            for table in (
                self._users,
                self._roles,
                self._resources,
                self._user_roles,
                self._user_permissions,
                self._role_permissions,
            ):
                for key in [k for k in table if k[0] == tenant_id]:
                    del table[key]
            self._drop_properties(tenant_id)
            del self._tenants[tenant_id]
        logger.debug(f"Deleted tenant {tenant_id} from memory store")
        return Result.ok(True)

    # Users

    async def create_user(
        self,
        user: User,
        properties: Sequence[PropertyInput] = (),
        role_ids: Sequence[str] = (),
    ) -> Result[User]:
        normalized = self._normalized(properties)
        if not normalized.success:
            return normalized
        async with self._lock:
            key = (user.tenant_id, user.id)
            if key in self._users:
                return Result.fail(ConflictError(
                    f"User '{user.id}' already exists", details={"tenant_id": user.tenant_id, "id": user.id}
                ))
            for role_id in role_ids:
                if (user.tenant_id, role_id) not in self._roles:
                    return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": user.tenant_id}))
            stored = replace(user, properties=[])
            self._users[key] = stored
            self._put_properties(user.tenant_id, OwnerRef.user(user.id), normalized.data)
            for role_id in role_ids:
                self._user_roles[(user.tenant_id, user.id, role_id)] = UserRole(
                    tenant_id=user.tenant_id, user_id=user.id, role_id=role_id
                )
        return Result.ok(stored)

    async def get_user(self, tenant_id: str, user_id: str) -> Result[Optional[User]]:
        return Result.ok(self._users.get((tenant_id, user_id)))

    async def get_users_by_identity(
        self, tenant_id: str, identity_provider: str, identity_provider_user_id: str
    ) -> Result[List[User]]:
        users = [
            u for (t, _), u in self._users.items()
            if t == tenant_id
            and u.identity_provider == identity_provider
            and u.identity_provider_user_id == identity_provider_user_id
        ]
        return Result.ok(sorted(users, key=lambda u: u.id))

    async def list_users(self, tenant_id: str, identity_provider: Optional[str] = None) -> Result[List[User]]:
        users = [
            u for (t, _), u in self._users.items()
            if t == tenant_id and (identity_provider is None or u.identity_provider == identity_provider)
        ]
        return Result.ok(sorted(users, key=lambda u: u.id))

    async def update_user(
        self,
        tenant_id: str,
        user_id: str,
        identity_provider: Optional[str] = None,
        identity_provider_user_id: Optional[str] = None,
    ) -> Result[Optional[User]]:
        async with self._lock:
            user = self._users.get((tenant_id, user_id))
            if user is None:
                return Result.ok(None)
            updated = replace(
                user,
                identity_provider=identity_provider if identity_provider is not None else user.identity_provider,
                identity_provider_user_id=(
                    identity_provider_user_id
                    if identity_provider_user_id is not None
                    else user.identity_provider_user_id
                ),
                updated_at=utc_now(),
            )
            self._users[(tenant_id, user_id)] = updated
        return Result.ok(updated)

    async def delete_user(self, tenant_id: str, user_id: str) -> Result[bool]:
        async with self._lock:
            if (tenant_id, user_id) not in self._users:
                return Result.ok(False)
            for key in [k for k in self._user_roles if k[0] == tenant_id and k[1] == user_id]:
                del self._user_roles[key]
            for key in [k for k in self._user_permissions if k[0] == tenant_id and k[1] == user_id]:
                del self._user_permissions[key]
            self._drop_properties(tenant_id, OwnerRef.user(user_id))
            del self._users[(tenant_id, user_id)]
        return Result.ok(True)

    # Roles

    async def create_role(self, role: Role, properties: Sequence[PropertyInput] = ()) -> Result[Role]:
        normalized = self._normalized(properties)
        if not normalized.success:
            return normalized
        async with self._lock:
            key = (role.tenant_id, role.id)
            if key in self._roles:
                return Result.fail(ConflictError(
                    f"Role '{role.id}' already exists", details={"tenant_id": role.tenant_id, "id": role.id}
                ))
            stored = replace(role, properties=[])
            self._roles[key] = stored
            self._put_properties(role.tenant_id, OwnerRef.role(role.id), normalized.data)
        return Result.ok(stored)

    async def get_role(self, tenant_id: str, role_id: str) -> Result[Optional[Role]]:
        return Result.ok(self._roles.get((tenant_id, role_id)))

    async def list_roles(self, tenant_id: str, name: Optional[str] = None) -> Result[List[Role]]:
        roles = [r for (t, _), r in self._roles.items() if t == tenant_id and (name is None or r.name == name)]
        return Result.ok(sorted(roles, key=lambda r: r.id))

    async def update_role(
        self,
        tenant_id: str,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Role]]:
        async with self._lock:
            role = self._roles.get((tenant_id, role_id))
            if role is None:
                return Result.ok(None)
            updated = replace(
                role,
                name=name if name is not None else role.name,
                description=description if description is not None else role.description,
                updated_at=utc_now(),
            )
            self._roles[(tenant_id, role_id)] = updated
        return Result.ok(updated)

    async def delete_role(self, tenant_id: str, role_id: str) -> Result[bool]:
        async with self._lock:
            if (tenant_id, role_id) not in self._roles:
                return Result.ok(False)
            for key in [k for k in self._user_roles if k[0] == tenant_id and k[2] == role_id]:
                del self._user_roles[key]
            for key in [k for k in self._role_permissions if k[0] == tenant_id and k[1] == role_id]:
                del self._role_permissions[key]
            self._drop_properties(tenant_id, OwnerRef.role(role_id))
            del self._roles[(tenant_id, role_id)]
        return Result.ok(True)

    # Resources

    async def create_resource(
        self, resource: Resource, properties: Sequence[PropertyInput] = ()
    ) -> Result[Resource]:
        normalized = self._normalized(properties)
        if not normalized.success:
            return normalized
        async with self._lock:
            key = (resource.tenant_id, resource.id)
            if key in self._resources:
                return Result.fail(ConflictError(
                    f"Resource '{resource.id}' already exists",
                    details={"tenant_id": resource.tenant_id, "id": resource.id},
                ))
            stored = replace(resource, properties=[])
            self._resources[key] = stored
            self._put_properties(resource.tenant_id, OwnerRef.resource(resource.id), normalized.data)
        return Result.ok(stored)

    async def get_resource(self, tenant_id: str, resource_id: str) -> Result[Optional[Resource]]:
        return Result.ok(self._resources.get((tenant_id, resource_id)))

    async def list_resources(self, tenant_id: str, id_prefix: Optional[str] = None) -> Result[List[Resource]]:
        resources = [
            r for (t, _), r in self._resources.items()
            if t == tenant_id and (id_prefix is None or r.matches_prefix(id_prefix))
        ]
        return Result.ok(sorted(resources, key=lambda r: r.id))

    async def update_resource(
        self,
        tenant_id: str,
        resource_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Resource]]:
        async with self._lock:
            resource = self._resources.get((tenant_id, resource_id))
            if resource is None:
                return Result.ok(None)
            updated = replace(
                resource,
                name=name if name is not None else resource.name,
                description=description if description is not None else resource.description,
                updated_at=utc_now(),
            )
            self._resources[(tenant_id, resource_id)] = updated
        return Result.ok(updated)

    async def delete_resource(self, tenant_id: str, resource_id: str) -> Result[bool]:
        async with self._lock:
            if (tenant_id, resource_id) not in self._resources:
                return Result.ok(False)
            self._drop_grants_for_resources(tenant_id, {resource_id})
            self._drop_properties(tenant_id, OwnerRef.resource(resource_id))
            del self._resources[(tenant_id, resource_id)]
        return Result.ok(True)

    async def delete_resources_by_id_prefix(self, tenant_id: str, id_prefix: str) -> Result[int]:
        async with self._lock:
            doomed = {
                resource_id for (t, resource_id) in self._resources
                if t == tenant_id and resource_id.startswith(id_prefix)
            }
            if not doomed:
                return Result.ok(0)
            self._drop_grants_for_resources(tenant_id, doomed)
            for resource_id in doomed:
                self._drop_properties(tenant_id, OwnerRef.resource(resource_id))
                del self._resources[(tenant_id, resource_id)]
        logger.debug(f"Deleted {len(doomed)} resources with prefix '{id_prefix}' in tenant {tenant_id}")
        return Result.ok(len(doomed))

    # Properties

    async def list_properties(self, tenant_id: str, owner: OwnerRef) -> Result[List[Property]]:
        props = [
            p for (kind, t, owner_id, _), p in self._properties.items()
            if kind == owner.kind.value and t == tenant_id and owner_id == owner.id
        ]
        return Result.ok(sorted(props, key=lambda p: p.name))

    async def get_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[Optional[Property]]:
        return Result.ok(self._properties.get(self._property_key(tenant_id, owner, name)))

    async def set_property(self, tenant_id: str, owner: OwnerRef, prop: PropertyInput) -> Result[Property]:
        normalized = self._normalized([prop])
        if not normalized.success:
            return normalized
        async with self._lock:
            if not self._owner_exists(tenant_id, owner):
                return Result.fail(NotFoundError(
                    owner.kind.value.capitalize(), owner.id, details={"tenant_id": tenant_id}
                ))
            key = self._property_key(tenant_id, owner, prop.name)
            existing = self._properties.get(key)
            stored = Property(
                owner=owner,
                name=prop.name,
                value=normalized.data[0].value,
                hidden=prop.hidden,
                created_at=existing.created_at if existing else utc_now(),
            )
            self._properties[key] = stored
        return Result.ok(stored)

    async def delete_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[bool]:
        async with self._lock:
            removed = self._properties.pop(self._property_key(tenant_id, owner, name), None)
        return Result.ok(removed is not None)

    # Memberships

    async def assign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[UserRole]:
        async with self._lock:
            if (tenant_id, user_id) not in self._users:
                return Result.fail(NotFoundError("User", user_id, details={"tenant_id": tenant_id}))
            if (tenant_id, role_id) not in self._roles:
                return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": tenant_id}))
            key = (tenant_id, user_id, role_id)
            membership = self._user_roles.get(key)
            if membership is None:
                membership = UserRole(tenant_id=tenant_id, user_id=user_id, role_id=role_id)
                self._user_roles[key] = membership
        return Result.ok(membership)

    async def unassign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[bool]:
        async with self._lock:
            removed = self._user_roles.pop((tenant_id, user_id, role_id), None)
        return Result.ok(removed is not None)

    async def list_user_role_ids(self, tenant_id: str, user_id: str) -> Result[List[str]]:
        return Result.ok(sorted(r for (t, u, r) in self._user_roles if t == tenant_id and u == user_id))

    async def list_role_user_ids(self, tenant_id: str, role_id: str) -> Result[List[str]]:
        return Result.ok(sorted(u for (t, u, r) in self._user_roles if t == tenant_id and r == role_id))

    # User grants

    async def grant_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[UserPermission]:
        async with self._lock:
            if (tenant_id, user_id) not in self._users:
                return Result.fail(NotFoundError("User", user_id, details={"tenant_id": tenant_id}))
            key = (tenant_id, user_id, resource_id, action)
            grant = self._user_permissions.get(key)
            if grant is None:
                grant = UserPermission(tenant_id=tenant_id, user_id=user_id, resource_id=resource_id, action=action)
                self._user_permissions[key] = grant
        return Result.ok(grant)

    async def revoke_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        async with self._lock:
            removed = self._user_permissions.pop((tenant_id, user_id, resource_id, action), None)
        return Result.ok(removed is not None)

    async def list_user_permissions(
        self,
        tenant_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[UserPermission]]:
        grants = [
            g for (t, u, r, a), g in self._user_permissions.items()
            if t == tenant_id and u == user_id
            and (resource_id is None or r == resource_id)
            and (action is None or a == action)
        ]
        return Result.ok(sorted(grants, key=lambda g: (g.resource_id, g.action)))

    async def list_user_permissions_by_prefix(
        self, tenant_id: str, user_id: str, resource_id_prefix: str
    ) -> Result[List[UserPermission]]:
        grants = [
            g for (t, u, r, _), g in self._user_permissions.items()
            if t == tenant_id and u == user_id and r.startswith(resource_id_prefix)
        ]
        return Result.ok(sorted(grants, key=lambda g: (g.resource_id, g.action)))

    # Role grants

    async def grant_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[RolePermission]:
        async with self._lock:
            if (tenant_id, role_id) not in self._roles:
                return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": tenant_id}))
            key = (tenant_id, role_id, resource_id, action)
            grant = self._role_permissions.get(key)
            if grant is None:
                grant = RolePermission(tenant_id=tenant_id, role_id=role_id, resource_id=resource_id, action=action)
                self._role_permissions[key] = grant
        return Result.ok(grant)

    async def revoke_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        async with self._lock:
            removed = self._role_permissions.pop((tenant_id, role_id, resource_id, action), None)
        return Result.ok(removed is not None)

    async def list_role_permissions(
        self,
        tenant_id: str,
        role_ids: Sequence[str],
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[RolePermission]]:
        wanted = set(role_ids)
        grants = [
            g for (t, role, r, a), g in self._role_permissions.items()
            if t == tenant_id and role in wanted
            and (resource_id is None or r == resource_id)
            and (action is None or a == action)
        ]
        return Result.ok(sorted(grants, key=lambda g: (g.role_id, g.resource_id, g.action)))

    async def list_role_permissions_by_prefix(
        self, tenant_id: str, role_ids: Sequence[str], resource_id_prefix: str
    ) -> Result[List[RolePermission]]:
        wanted = set(role_ids)
        grants = [
            g for (t, role, r, _), g in self._role_permissions.items()
            if t == tenant_id and role in wanted and r.startswith(resource_id_prefix)
        ]
        return Result.ok(sorted(grants, key=lambda g: (g.role_id, g.resource_id, g.action)))

    async def list_permissions_by_resource(self, tenant_id: str, resource_id: str) -> Result[ResourcePermissions]:
        user_grants = sorted(
            (g for (t, _, r, _), g in self._user_permissions.items() if t == tenant_id and r == resource_id),
            key=lambda g: (g.user_id, g.action),
        )
        role_grants = sorted(
            (g for (t, _, r, _), g in self._role_permissions.items() if t == tenant_id and r == resource_id),
            key=lambda g: (g.role_id, g.action),
        )
        return Result.ok(ResourcePermissions(
            resource_id=resource_id,
            user_permissions=list(user_grants),
            role_permissions=list(role_grants),
        ))
