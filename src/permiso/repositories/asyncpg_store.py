"""AsyncPG-based store implementation.

Concrete implementation of the PermisoStore protocol on PostgreSQL. Every
query filters by tenant_id; multi-row writes run inside one transaction.
Driver failures are logged here with full detail and returned as
StorageError (unique violations as ConflictError).
"""

import logging
from typing import List, Optional, Sequence, Tuple

import asyncpg

from ..core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from ..core.result import Result
from ..database.connection import DatabaseManager
from ..features.permissions.entities import RolePermission, UserPermission, ResourcePermissions
from ..features.properties.entities import (
    OwnerKind,
    OwnerRef,
    Property,
    PropertyInput,
    decode_property_value,
    encode_property_value,
)
from ..features.resources.entities import Resource
from ..features.roles.entities import Role
from ..features.tenants.entities import Tenant
from ..features.users.entities import User, UserRole

logger = logging.getLogger(__name__)

DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError)

# properties has no foreign key to its owner; upserts take this row lock instead
OWNER_LOOKUPS = {
    OwnerKind.TENANT: "SELECT 1 FROM tenants WHERE id = $1 AND id = $2 FOR KEY SHARE",
    OwnerKind.USER: "SELECT 1 FROM users WHERE tenant_id = $1 AND id = $2 FOR KEY SHARE",
    OwnerKind.ROLE: "SELECT 1 FROM roles WHERE tenant_id = $1 AND id = $2 FOR KEY SHARE",
    OwnerKind.RESOURCE: "SELECT 1 FROM resources WHERE tenant_id = $1 AND id = $2 FOR KEY SHARE",
}

PROPERTY_COLUMNS = "owner_type, owner_id, name, value::text AS value, hidden, created_at"


def escape_like_prefix(prefix: str) -> str:
    """Turn a literal prefix into a LIKE pattern (backslash is the escape)."""
    escaped = prefix.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"{escaped}%"


def _affected(status: str) -> int:
    # asyncpg returns e.g. "DELETE 3"
    return int(status.split()[-1])


class AsyncPGStore:
    """PostgreSQL implementation of PermisoStore."""

    def __init__(self, database_manager: DatabaseManager):
        self.db = database_manager

    # Row mapping

    @staticmethod
    def _tenant_from_row(row: asyncpg.Record) -> Tenant:
        return Tenant(
            id=row["id"],
            name=row["name"],
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _user_from_row(row: asyncpg.Record) -> User:
        return User(
            id=row["id"],
            tenant_id=row["tenant_id"],
            identity_provider=row["identity_provider"],
            identity_provider_user_id=row["identity_provider_user_id"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _role_from_row(row: asyncpg.Record) -> Role:
        return Role(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _resource_from_row(row: asyncpg.Record) -> Resource:
        return Resource(
            id=row["id"],
            tenant_id=row["tenant_id"],
            name=row["name"],
            description=row["description"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _property_from_row(row: asyncpg.Record) -> Property:
        return Property(
            owner=OwnerRef(OwnerKind(row["owner_type"]), row["owner_id"]),
            name=row["name"],
            value=decode_property_value(row["value"]),
            hidden=row["hidden"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _user_permission_from_row(row: asyncpg.Record) -> UserPermission:
        return UserPermission(
            tenant_id=row["tenant_id"],
            user_id=row["user_id"],
            resource_id=row["resource_id"],
            action=row["action"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _role_permission_from_row(row: asyncpg.Record) -> RolePermission:
        return RolePermission(
            tenant_id=row["tenant_id"],
            role_id=row["role_id"],
            resource_id=row["resource_id"],
            action=row["action"],
            created_at=row["created_at"],
        )

    # Error mapping

    @staticmethod
    def _failure(
        operation: str,
        error: BaseException,
        conflict: Optional[str] = None,
        missing: Optional[Tuple[str, str]] = None,
    ) -> Result:
        if conflict and isinstance(error, asyncpg.UniqueViolationError):
            return Result.fail(ConflictError(conflict))
        if missing and isinstance(error, asyncpg.ForeignKeyViolationError):
            return Result.fail(NotFoundError(*missing))
        logger.error(f"Storage failure in {operation}: {error}")
        return Result.fail(StorageError(f"Storage failure in {operation}", cause=error))

    @staticmethod
    def _property_rows(
        tenant_id: str, owner: OwnerRef, properties: Sequence[PropertyInput]
    ) -> Result[List[tuple]]:
        # Encoded before any statement runs so a rejected value writes nothing
        try:
            return Result.ok([
                (owner.kind.value, tenant_id, owner.id, p.name, encode_property_value(p.value), p.hidden)
                for p in properties
            ])
        except ValidationError as e:
            return Result.fail(e)

    @staticmethod
    async def _insert_properties(conn, rows: List[tuple]) -> None:
        if not rows:
            return
        await conn.executemany(
            """
            INSERT INTO properties (owner_type, tenant_id, owner_id, name, value, hidden)
            VALUES ($1, $2, $3, $4, $5::jsonb, $6)
            """,
            rows,
        )

    @staticmethod
    async def _delete_owner_properties(conn, tenant_id: str, kind: OwnerKind, owner_ids: List[str]) -> None:
        await conn.execute(
            "DELETE FROM properties WHERE owner_type = $1 AND tenant_id = $2 AND owner_id = ANY($3::text[])",
            kind.value,
            tenant_id,
            owner_ids,
        )

    # Tenants

    async def create_tenant(self, tenant: Tenant, properties: Sequence[PropertyInput] = ()) -> Result[Tenant]:
        rows = self._property_rows(tenant.id, OwnerRef.tenant(tenant.id), properties)
        if not rows.success:
            return rows
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO tenants (id, name, description)
                    VALUES ($1, $2, $3)
                    RETURNING id, name, description, created_at, updated_at
                    """,
                    tenant.id,
                    tenant.name,
                    tenant.description,
                )
                await self._insert_properties(conn, rows.data)
            return Result.ok(self._tenant_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure("create_tenant", e, conflict=f"Tenant '{tenant.id}' already exists")

    async def get_tenant(self, tenant_id: str) -> Result[Optional[Tenant]]:
        try:
            row = await self.db.fetchrow(
                "SELECT id, name, description, created_at, updated_at FROM tenants WHERE id = $1",
                tenant_id,
            )
            return Result.ok(self._tenant_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("get_tenant", e)

    async def list_tenants(self, name: Optional[str] = None) -> Result[List[Tenant]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT id, name, description, created_at, updated_at FROM tenants
                WHERE ($1::text IS NULL OR name = $1)
                ORDER BY id
                """,
                name,
            )
            return Result.ok([self._tenant_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_tenants", e)

    async def update_tenant(
        self, tenant_id: str, name: Optional[str] = None, description: Optional[str] = None
    ) -> Result[Optional[Tenant]]:
        try:
            row = await self.db.fetchrow(
                """
                UPDATE tenants
                SET name = COALESCE($2, name),
                    description = COALESCE($3, description),
                    updated_at = NOW()
                WHERE id = $1
                RETURNING id, name, description, created_at, updated_at
                """,
                tenant_id,
                name,
                description,
            )
            return Result.ok(self._tenant_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("update_tenant", e)

    async def delete_tenant(self, tenant_id: str) -> Result[bool]:
        try:
            # Every tenant-owned table cascades from tenants(id)
            status = await self.db.execute("DELETE FROM tenants WHERE id = $1", tenant_id)
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("delete_tenant", e)

    # Users

    async def create_user(
        self,
        user: User,
        properties: Sequence[PropertyInput] = (),
        role_ids: Sequence[str] = (),
    ) -> Result[User]:
        rows = self._property_rows(user.tenant_id, OwnerRef.user(user.id), properties)
        if not rows.success:
            return rows
        try:
            async with self.db.transaction() as conn:
                if role_ids:
                    found = await conn.fetch(
                        "SELECT id FROM roles WHERE tenant_id = $1 AND id = ANY($2::text[])",
                        user.tenant_id,
                        list(role_ids),
                    )
                    known = {row["id"] for row in found}
                    missing = [role_id for role_id in role_ids if role_id not in known]
                    if missing:
                        return Result.fail(NotFoundError("Role", missing[0], details={"tenant_id": user.tenant_id}))
                row = await conn.fetchrow(
                    """
                    INSERT INTO users (tenant_id, id, identity_provider, identity_provider_user_id)
                    VALUES ($1, $2, $3, $4)
                    RETURNING tenant_id, id, identity_provider, identity_provider_user_id, created_at, updated_at
                    """,
                    user.tenant_id,
                    user.id,
                    user.identity_provider,
                    user.identity_provider_user_id,
                )
                await self._insert_properties(conn, rows.data)
                if role_ids:
                    await conn.executemany(
                        "INSERT INTO user_roles (tenant_id, user_id, role_id) VALUES ($1, $2, $3) "
                        "ON CONFLICT DO NOTHING",
                        [(user.tenant_id, user.id, role_id) for role_id in role_ids],
                    )
            return Result.ok(self._user_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure(
                "create_user",
                e,
                conflict=f"User '{user.id}' already exists",
                missing=("Tenant", user.tenant_id),
            )

    async def get_user(self, tenant_id: str, user_id: str) -> Result[Optional[User]]:
        try:
            row = await self.db.fetchrow(
                """
                SELECT tenant_id, id, identity_provider, identity_provider_user_id, created_at, updated_at
                FROM users WHERE tenant_id = $1 AND id = $2
                """,
                tenant_id,
                user_id,
            )
            return Result.ok(self._user_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("get_user", e)

    async def get_users_by_identity(
        self, tenant_id: str, identity_provider: str, identity_provider_user_id: str
    ) -> Result[List[User]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, id, identity_provider, identity_provider_user_id, created_at, updated_at
                FROM users
                WHERE tenant_id = $1 AND identity_provider = $2 AND identity_provider_user_id = $3
                ORDER BY id
                """,
                tenant_id,
                identity_provider,
                identity_provider_user_id,
            )
            return Result.ok([self._user_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("get_users_by_identity", e)

    async def list_users(self, tenant_id: str, identity_provider: Optional[str] = None) -> Result[List[User]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, id, identity_provider, identity_provider_user_id, created_at, updated_at
                FROM users
                WHERE tenant_id = $1 AND ($2::text IS NULL OR identity_provider = $2)
                ORDER BY id
                """,
                tenant_id,
                identity_provider,
            )
            return Result.ok([self._user_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_users", e)

    async def update_user(
        self,
        tenant_id: str,
        user_id: str,
        identity_provider: Optional[str] = None,
        identity_provider_user_id: Optional[str] = None,
    ) -> Result[Optional[User]]:
        try:
            row = await self.db.fetchrow(
                """
                UPDATE users
                SET identity_provider = COALESCE($3, identity_provider),
                    identity_provider_user_id = COALESCE($4, identity_provider_user_id),
                    updated_at = NOW()
                WHERE tenant_id = $1 AND id = $2
                RETURNING tenant_id, id, identity_provider, identity_provider_user_id, created_at, updated_at
                """,
                tenant_id,
                user_id,
                identity_provider,
                identity_provider_user_id,
            )
            return Result.ok(self._user_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("update_user", e)

    async def delete_user(self, tenant_id: str, user_id: str) -> Result[bool]:
        try:
            async with self.db.transaction() as conn:
                # Owner row before its properties; waits on any upsert holding the key-share lock
                # user_roles and user_permissions cascade from users
                status = await conn.execute(
                    "DELETE FROM users WHERE tenant_id = $1 AND id = $2", tenant_id, user_id
                )
                await self._delete_owner_properties(conn, tenant_id, OwnerKind.USER, [user_id])
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("delete_user", e)

    # Roles

    async def create_role(self, role: Role, properties: Sequence[PropertyInput] = ()) -> Result[Role]:
        rows = self._property_rows(role.tenant_id, OwnerRef.role(role.id), properties)
        if not rows.success:
            return rows
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO roles (tenant_id, id, name, description)
                    VALUES ($1, $2, $3, $4)
                    RETURNING tenant_id, id, name, description, created_at, updated_at
                    """,
                    role.tenant_id,
                    role.id,
                    role.name,
                    role.description,
                )
                await self._insert_properties(conn, rows.data)
            return Result.ok(self._role_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure(
                "create_role",
                e,
                conflict=f"Role '{role.id}' already exists",
                missing=("Tenant", role.tenant_id),
            )

    async def get_role(self, tenant_id: str, role_id: str) -> Result[Optional[Role]]:
        try:
            row = await self.db.fetchrow(
                """
                SELECT tenant_id, id, name, description, created_at, updated_at
                FROM roles WHERE tenant_id = $1 AND id = $2
                """,
                tenant_id,
                role_id,
            )
            return Result.ok(self._role_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("get_role", e)

    async def list_roles(self, tenant_id: str, name: Optional[str] = None) -> Result[List[Role]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, id, name, description, created_at, updated_at
                FROM roles
                WHERE tenant_id = $1 AND ($2::text IS NULL OR name = $2)
                ORDER BY id
                """,
                tenant_id,
                name,
            )
            return Result.ok([self._role_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_roles", e)

    async def update_role(
        self,
        tenant_id: str,
        role_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Role]]:
        try:
            row = await self.db.fetchrow(
                """
                UPDATE roles
                SET name = COALESCE($3, name),
                    description = COALESCE($4, description),
                    updated_at = NOW()
                WHERE tenant_id = $1 AND id = $2
                RETURNING tenant_id, id, name, description, created_at, updated_at
                """,
                tenant_id,
                role_id,
                name,
                description,
            )
            return Result.ok(self._role_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("update_role", e)

    async def delete_role(self, tenant_id: str, role_id: str) -> Result[bool]:
        try:
            async with self.db.transaction() as conn:
                status = await conn.execute(
                    "DELETE FROM roles WHERE tenant_id = $1 AND id = $2", tenant_id, role_id
                )
                await self._delete_owner_properties(conn, tenant_id, OwnerKind.ROLE, [role_id])
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("delete_role", e)

    # Resources

    async def create_resource(
        self, resource: Resource, properties: Sequence[PropertyInput] = ()
    ) -> Result[Resource]:
        rows = self._property_rows(resource.tenant_id, OwnerRef.resource(resource.id), properties)
        if not rows.success:
            return rows
        try:
            async with self.db.transaction() as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO resources (tenant_id, id, name, description)
                    VALUES ($1, $2, $3, $4)
                    RETURNING tenant_id, id, name, description, created_at, updated_at
                    """,
                    resource.tenant_id,
                    resource.id,
                    resource.name,
                    resource.description,
                )
                await self._insert_properties(conn, rows.data)
            return Result.ok(self._resource_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure(
                "create_resource",
                e,
                conflict=f"Resource '{resource.id}' already exists",
                missing=("Tenant", resource.tenant_id),
            )

    async def get_resource(self, tenant_id: str, resource_id: str) -> Result[Optional[Resource]]:
        try:
            row = await self.db.fetchrow(
                """
                SELECT tenant_id, id, name, description, created_at, updated_at
                FROM resources WHERE tenant_id = $1 AND id = $2
                """,
                tenant_id,
                resource_id,
            )
            return Result.ok(self._resource_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("get_resource", e)

    async def list_resources(self, tenant_id: str, id_prefix: Optional[str] = None) -> Result[List[Resource]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, id, name, description, created_at, updated_at
                FROM resources
                WHERE tenant_id = $1 AND ($2::text IS NULL OR id LIKE $2)
                ORDER BY id
                """,
                tenant_id,
                escape_like_prefix(id_prefix) if id_prefix is not None else None,
            )
            return Result.ok([self._resource_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_resources", e)

    async def update_resource(
        self,
        tenant_id: str,
        resource_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Result[Optional[Resource]]:
        try:
            row = await self.db.fetchrow(
                """
                UPDATE resources
                SET name = COALESCE($3, name),
                    description = COALESCE($4, description),
                    updated_at = NOW()
                WHERE tenant_id = $1 AND id = $2
                RETURNING tenant_id, id, name, description, created_at, updated_at
                """,
                tenant_id,
                resource_id,
                name,
                description,
            )
            return Result.ok(self._resource_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("update_resource", e)

    async def _delete_resources(self, conn, tenant_id: str, resource_ids: List[str]) -> int:
        # Resource rows before their properties; see delete_user
        status = await conn.execute(
            "DELETE FROM resources WHERE tenant_id = $1 AND id = ANY($2::text[])",
            tenant_id,
            resource_ids,
        )
        await conn.execute(
            "DELETE FROM user_permissions WHERE tenant_id = $1 AND resource_id = ANY($2::text[])",
            tenant_id,
            resource_ids,
        )
        await conn.execute(
            "DELETE FROM role_permissions WHERE tenant_id = $1 AND resource_id = ANY($2::text[])",
            tenant_id,
            resource_ids,
        )
        await self._delete_owner_properties(conn, tenant_id, OwnerKind.RESOURCE, resource_ids)
        return _affected(status)

    async def delete_resource(self, tenant_id: str, resource_id: str) -> Result[bool]:
        try:
            async with self.db.transaction() as conn:
                deleted = await self._delete_resources(conn, tenant_id, [resource_id])
            return Result.ok(deleted > 0)
        except DRIVER_ERRORS as e:
            return self._failure("delete_resource", e)

    async def delete_resources_by_id_prefix(self, tenant_id: str, id_prefix: str) -> Result[int]:
        try:
            async with self.db.transaction() as conn:
                rows = await conn.fetch(
                    "SELECT id FROM resources WHERE tenant_id = $1 AND id LIKE $2 FOR UPDATE",
                    tenant_id,
                    escape_like_prefix(id_prefix),
                )
                resource_ids = [row["id"] for row in rows]
                if not resource_ids:
                    return Result.ok(0)
                deleted = await self._delete_resources(conn, tenant_id, resource_ids)
            logger.debug(f"Deleted {deleted} resources with prefix '{id_prefix}' in tenant {tenant_id}")
            return Result.ok(deleted)
        except DRIVER_ERRORS as e:
            return self._failure("delete_resources_by_id_prefix", e)

    # Properties

    async def list_properties(self, tenant_id: str, owner: OwnerRef) -> Result[List[Property]]:
        try:
            rows = await self.db.fetch(
                f"""
                SELECT {PROPERTY_COLUMNS} FROM properties
                WHERE owner_type = $1 AND tenant_id = $2 AND owner_id = $3
                ORDER BY name
                """,
                owner.kind.value,
                tenant_id,
                owner.id,
            )
            return Result.ok([self._property_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_properties", e)

    async def get_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[Optional[Property]]:
        try:
            row = await self.db.fetchrow(
                f"""
                SELECT {PROPERTY_COLUMNS} FROM properties
                WHERE owner_type = $1 AND tenant_id = $2 AND owner_id = $3 AND name = $4
                """,
                owner.kind.value,
                tenant_id,
                owner.id,
                name,
            )
            return Result.ok(self._property_from_row(row) if row else None)
        except DRIVER_ERRORS as e:
            return self._failure("get_property", e)

    async def set_property(self, tenant_id: str, owner: OwnerRef, prop: PropertyInput) -> Result[Property]:
        rows = self._property_rows(tenant_id, owner, [prop])
        if not rows.success:
            return rows
        try:
            async with self.db.transaction() as conn:
                # The key-share lock holds off a concurrent owner delete until commit
                if not await conn.fetchval(OWNER_LOOKUPS[owner.kind], tenant_id, owner.id):
                    return Result.fail(NotFoundError(
                        owner.kind.value.capitalize(), owner.id, details={"tenant_id": tenant_id}
                    ))
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO properties (owner_type, tenant_id, owner_id, name, value, hidden)
                    VALUES ($1, $2, $3, $4, $5::jsonb, $6)
                    ON CONFLICT (owner_type, tenant_id, owner_id, name)
                    DO UPDATE SET value = EXCLUDED.value, hidden = EXCLUDED.hidden
                    RETURNING {PROPERTY_COLUMNS}
                    """,
                    *rows.data[0],
                )
            return Result.ok(self._property_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure("set_property", e, missing=("Tenant", tenant_id))

    async def delete_property(self, tenant_id: str, owner: OwnerRef, name: str) -> Result[bool]:
        try:
            status = await self.db.execute(
                """
                DELETE FROM properties
                WHERE owner_type = $1 AND tenant_id = $2 AND owner_id = $3 AND name = $4
                """,
                owner.kind.value,
                tenant_id,
                owner.id,
                name,
            )
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("delete_property", e)

    # Memberships

    async def assign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[UserRole]:
        try:
            async with self.db.transaction() as conn:
                if not await conn.fetchval(
                    "SELECT 1 FROM users WHERE tenant_id = $1 AND id = $2", tenant_id, user_id
                ):
                    return Result.fail(NotFoundError("User", user_id, details={"tenant_id": tenant_id}))
                if not await conn.fetchval(
                    "SELECT 1 FROM roles WHERE tenant_id = $1 AND id = $2", tenant_id, role_id
                ):
                    return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": tenant_id}))
                await conn.execute(
                    "INSERT INTO user_roles (tenant_id, user_id, role_id) VALUES ($1, $2, $3) "
                    "ON CONFLICT DO NOTHING",
                    tenant_id,
                    user_id,
                    role_id,
                )
                row = await conn.fetchrow(
                    """
                    SELECT tenant_id, user_id, role_id, created_at FROM user_roles
                    WHERE tenant_id = $1 AND user_id = $2 AND role_id = $3
                    """,
                    tenant_id,
                    user_id,
                    role_id,
                )
            return Result.ok(UserRole(
                tenant_id=row["tenant_id"],
                user_id=row["user_id"],
                role_id=row["role_id"],
                created_at=row["created_at"],
            ))
        except DRIVER_ERRORS as e:
            return self._failure("assign_user_role", e)

    async def unassign_user_role(self, tenant_id: str, user_id: str, role_id: str) -> Result[bool]:
        try:
            status = await self.db.execute(
                "DELETE FROM user_roles WHERE tenant_id = $1 AND user_id = $2 AND role_id = $3",
                tenant_id,
                user_id,
                role_id,
            )
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("unassign_user_role", e)

    async def list_user_role_ids(self, tenant_id: str, user_id: str) -> Result[List[str]]:
        try:
            rows = await self.db.fetch(
                "SELECT role_id FROM user_roles WHERE tenant_id = $1 AND user_id = $2 ORDER BY role_id",
                tenant_id,
                user_id,
            )
            return Result.ok([row["role_id"] for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_user_role_ids", e)

    async def list_role_user_ids(self, tenant_id: str, role_id: str) -> Result[List[str]]:
        try:
            rows = await self.db.fetch(
                "SELECT user_id FROM user_roles WHERE tenant_id = $1 AND role_id = $2 ORDER BY user_id",
                tenant_id,
                role_id,
            )
            return Result.ok([row["user_id"] for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_role_user_ids", e)

    # User grants

    async def grant_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[UserPermission]:
        try:
            async with self.db.transaction() as conn:
                if not await conn.fetchval(
                    "SELECT 1 FROM users WHERE tenant_id = $1 AND id = $2", tenant_id, user_id
                ):
                    return Result.fail(NotFoundError("User", user_id, details={"tenant_id": tenant_id}))
                await conn.execute(
                    """
                    INSERT INTO user_permissions (tenant_id, user_id, resource_id, action)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT DO NOTHING
                    """,
                    tenant_id,
                    user_id,
                    resource_id,
                    action,
                )
                row = await conn.fetchrow(
                    """
                    SELECT tenant_id, user_id, resource_id, action, created_at FROM user_permissions
                    WHERE tenant_id = $1 AND user_id = $2 AND resource_id = $3 AND action = $4
                    """,
                    tenant_id,
                    user_id,
                    resource_id,
                    action,
                )
            return Result.ok(self._user_permission_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure("grant_user_permission", e)

    async def revoke_user_permission(
        self, tenant_id: str, user_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        try:
            status = await self.db.execute(
                """
                DELETE FROM user_permissions
                WHERE tenant_id = $1 AND user_id = $2 AND resource_id = $3 AND action = $4
                """,
                tenant_id,
                user_id,
                resource_id,
                action,
            )
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("revoke_user_permission", e)

    async def list_user_permissions(
        self,
        tenant_id: str,
        user_id: str,
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[UserPermission]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, user_id, resource_id, action, created_at FROM user_permissions
                WHERE tenant_id = $1 AND user_id = $2
                  AND ($3::text IS NULL OR resource_id = $3)
                  AND ($4::text IS NULL OR action = $4)
                ORDER BY resource_id, action
                """,
                tenant_id,
                user_id,
                resource_id,
                action,
            )
            return Result.ok([self._user_permission_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_user_permissions", e)

    async def list_user_permissions_by_prefix(
        self, tenant_id: str, user_id: str, resource_id_prefix: str
    ) -> Result[List[UserPermission]]:
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, user_id, resource_id, action, created_at FROM user_permissions
                WHERE tenant_id = $1 AND user_id = $2 AND resource_id LIKE $3
                ORDER BY resource_id, action
                """,
                tenant_id,
                user_id,
                escape_like_prefix(resource_id_prefix),
            )
            return Result.ok([self._user_permission_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_user_permissions_by_prefix", e)

    # Role grants

    async def grant_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[RolePermission]:
        try:
            async with self.db.transaction() as conn:
                if not await conn.fetchval(
                    "SELECT 1 FROM roles WHERE tenant_id = $1 AND id = $2", tenant_id, role_id
                ):
                    return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": tenant_id}))
                await conn.execute(
                    """
                    INSERT INTO role_permissions (tenant_id, role_id, resource_id, action)
                    VALUES ($1, $2, $3, $4)
                    ON CONFLICT DO NOTHING
                    """,
                    tenant_id,
                    role_id,
                    resource_id,
                    action,
                )
                row = await conn.fetchrow(
                    """
                    SELECT tenant_id, role_id, resource_id, action, created_at FROM role_permissions
                    WHERE tenant_id = $1 AND role_id = $2 AND resource_id = $3 AND action = $4
                    """,
                    tenant_id,
                    role_id,
                    resource_id,
                    action,
                )
            return Result.ok(self._role_permission_from_row(row))
        except DRIVER_ERRORS as e:
            return self._failure("grant_role_permission", e)

    async def revoke_role_permission(
        self, tenant_id: str, role_id: str, resource_id: str, action: str
    ) -> Result[bool]:
        try:
            status = await self.db.execute(
                """
                DELETE FROM role_permissions
                WHERE tenant_id = $1 AND role_id = $2 AND resource_id = $3 AND action = $4
                """,
                tenant_id,
                role_id,
                resource_id,
                action,
            )
            return Result.ok(_affected(status) > 0)
        except DRIVER_ERRORS as e:
            return self._failure("revoke_role_permission", e)

    async def list_role_permissions(
        self,
        tenant_id: str,
        role_ids: Sequence[str],
        resource_id: Optional[str] = None,
        action: Optional[str] = None,
    ) -> Result[List[RolePermission]]:
        if not role_ids:
            return Result.ok([])
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, role_id, resource_id, action, created_at FROM role_permissions
                WHERE tenant_id = $1 AND role_id = ANY($2::text[])
                  AND ($3::text IS NULL OR resource_id = $3)
                  AND ($4::text IS NULL OR action = $4)
                ORDER BY role_id, resource_id, action
                """,
                tenant_id,
                list(role_ids),
                resource_id,
                action,
            )
            return Result.ok([self._role_permission_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_role_permissions", e)

    async def list_role_permissions_by_prefix(
        self, tenant_id: str, role_ids: Sequence[str], resource_id_prefix: str
    ) -> Result[List[RolePermission]]:
        if not role_ids:
            return Result.ok([])
        try:
            rows = await self.db.fetch(
                """
                SELECT tenant_id, role_id, resource_id, action, created_at FROM role_permissions
                WHERE tenant_id = $1 AND role_id = ANY($2::text[]) AND resource_id LIKE $3
                ORDER BY role_id, resource_id, action
                """,
                tenant_id,
                list(role_ids),
                escape_like_prefix(resource_id_prefix),
            )
            return Result.ok([self._role_permission_from_row(row) for row in rows])
        except DRIVER_ERRORS as e:
            return self._failure("list_role_permissions_by_prefix", e)

    async def list_permissions_by_resource(self, tenant_id: str, resource_id: str) -> Result[ResourcePermissions]:
        try:
            async with self.db.acquire() as conn:
                user_rows = await conn.fetch(
                    """
                    SELECT tenant_id, user_id, resource_id, action, created_at FROM user_permissions
                    WHERE tenant_id = $1 AND resource_id = $2
                    ORDER BY user_id, action
                    """,
                    tenant_id,
                    resource_id,
                )
                role_rows = await conn.fetch(
                    """
                    SELECT tenant_id, role_id, resource_id, action, created_at FROM role_permissions
                    WHERE tenant_id = $1 AND resource_id = $2
                    ORDER BY role_id, action
                    """,
                    tenant_id,
                    resource_id,
                )
            return Result.ok(ResourcePermissions(
                resource_id=resource_id,
                user_permissions=[self._user_permission_from_row(row) for row in user_rows],
                role_permissions=[self._role_permission_from_row(row) for row in role_rows],
            ))
        except DRIVER_ERRORS as e:
            return self._failure("list_permissions_by_resource", e)
