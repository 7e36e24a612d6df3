"""User orchestration, including role membership.

All calls are tenant-scoped: the tenant comes from the request context and
ROOT is rejected with IsolationViolation.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ....core.exceptions import NotFoundError
from ....core.result import Result
from ....core.shared import RequestContext, operation, require_tenant, validate_ids, validate_input
from ...properties.entities import OwnerRef, Property
from ...properties.services import property_service
from ...roles.entities import Role
from ..entities import User, UserRole
from ..models import UserCreateRequest, UserUpdateRequest

logger = logging.getLogger(__name__)


@operation("create_user")
async def create_user(
    ctx: RequestContext,
    id: str,
    identity_provider: Optional[str] = None,
    identity_provider_user_id: Optional[str] = None,
    properties: Optional[Sequence[Dict[str, Any]]] = None,
    role_ids: Optional[Sequence[str]] = None,
) -> Result[User]:
    """Create a user, optionally with initial properties and role memberships."""
    scope = require_tenant(ctx, "create_user")
    if not scope.success:
        return scope
    request = validate_input(
        UserCreateRequest,
        id=id,
        identity_provider=identity_provider,
        identity_provider_user_id=identity_provider_user_id,
        properties=list(properties or []),
        role_ids=list(role_ids or []),
    )
    if not request.success:
        return request
    tenant_id = scope.data
    data = request.data

    tenant = await ctx.repos.get_tenant(tenant_id)
    if not tenant.success:
        return tenant
    if tenant.data is None:
        return Result.fail(NotFoundError("Tenant", tenant_id))

    created = await ctx.repos.create_user(
        tenant_id,
        User(
            id=data.id,
            tenant_id=tenant_id,
            identity_provider=data.identity_provider,
            identity_provider_user_id=data.identity_provider_user_id,
        ),
        [p.to_input() for p in data.properties],
        data.role_ids,
    )
    if not created.success:
        return created
    return await property_service.with_properties(ctx, tenant_id, created.data, OwnerRef.user(data.id))


@operation("get_user")
async def get_user(ctx: RequestContext, user_id: str, include_hidden: bool = False) -> Result[User]:
    scope = require_tenant(ctx, "get_user")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked

    found = await ctx.repos.get_user(scope.data, user_id)
    if not found.success:
        return found
    if found.data is None:
        return Result.fail(NotFoundError("User", user_id, details={"tenant_id": scope.data}))
    return await property_service.with_properties(
        ctx, scope.data, found.data, OwnerRef.user(user_id), include_hidden
    )


@operation("get_users_by_identity")
async def get_users_by_identity(
    ctx: RequestContext, identity_provider: str, identity_provider_user_id: str
) -> Result[List[User]]:
    """Users linked to an external identity; more than one is allowed."""
    scope = require_tenant(ctx, "get_users_by_identity")
    if not scope.success:
        return scope
    checked = validate_ids(
        identity_provider=identity_provider, identity_provider_user_id=identity_provider_user_id
    )
    if not checked.success:
        return checked
    return await ctx.repos.get_users_by_identity(scope.data, identity_provider, identity_provider_user_id)


@operation("list_users")
async def list_users(ctx: RequestContext, identity_provider: Optional[str] = None) -> Result[List[User]]:
    scope = require_tenant(ctx, "list_users")
    if not scope.success:
        return scope
    return await ctx.repos.list_users(scope.data, identity_provider)


@operation("update_user")
async def update_user(
    ctx: RequestContext,
    user_id: str,
    identity_provider: Optional[str] = None,
    identity_provider_user_id: Optional[str] = None,
) -> Result[User]:
    scope = require_tenant(ctx, "update_user")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    request = validate_input(
        UserUpdateRequest,
        identity_provider=identity_provider,
        identity_provider_user_id=identity_provider_user_id,
    )
    if not request.success:
        return request

    updated = await ctx.repos.update_user(
        scope.data, user_id, request.data.identity_provider, request.data.identity_provider_user_id
    )
    if not updated.success:
        return updated
    if updated.data is None:
        return Result.fail(NotFoundError("User", user_id, details={"tenant_id": scope.data}))
    return await property_service.with_properties(ctx, scope.data, updated.data, OwnerRef.user(user_id))


@operation("delete_user")
async def delete_user(ctx: RequestContext, user_id: str) -> Result[bool]:
    """Delete a user with its memberships, direct grants and properties."""
    scope = require_tenant(ctx, "delete_user")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked

    deleted = await ctx.repos.delete_user(scope.data, user_id)
    if not deleted.success:
        return deleted
    if not deleted.data:
        return Result.fail(NotFoundError("User", user_id, details={"tenant_id": scope.data}))
    return deleted


# User properties


@operation("get_user_properties")
async def get_user_properties(
    ctx: RequestContext, user_id: str, include_hidden: bool = False
) -> Result[List[Property]]:
    scope = require_tenant(ctx, "get_user_properties")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    return await property_service.list_properties(ctx, scope.data, OwnerRef.user(user_id), include_hidden)


@operation("get_user_property")
async def get_user_property(
    ctx: RequestContext, user_id: str, name: str, include_hidden: bool = False
) -> Result[Optional[Property]]:
    scope = require_tenant(ctx, "get_user_property")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    return await property_service.get_property(ctx, scope.data, OwnerRef.user(user_id), name, include_hidden)


@operation("set_user_property")
async def set_user_property(
    ctx: RequestContext, user_id: str, name: str, value: Any = None, hidden: bool = False
) -> Result[Property]:
    scope = require_tenant(ctx, "set_user_property")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    return await property_service.set_property(ctx, scope.data, OwnerRef.user(user_id), name, value, hidden)


@operation("delete_user_property")
async def delete_user_property(ctx: RequestContext, user_id: str, name: str) -> Result[bool]:
    scope = require_tenant(ctx, "delete_user_property")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    return await property_service.delete_property(ctx, scope.data, OwnerRef.user(user_id), name)


# Role membership


@operation("assign_user_role")
async def assign_user_role(ctx: RequestContext, user_id: str, role_id: str) -> Result[UserRole]:
    """Idempotent; assigning a held role returns the existing membership."""
    scope = require_tenant(ctx, "assign_user_role")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id, role_id=role_id)
    if not checked.success:
        return checked
    return await ctx.repos.assign_user_role(scope.data, user_id, role_id)


@operation("unassign_user_role")
async def unassign_user_role(ctx: RequestContext, user_id: str, role_id: str) -> Result[bool]:
    """Whether a membership was removed; a role never held gives False."""
    scope = require_tenant(ctx, "unassign_user_role")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id, role_id=role_id)
    if not checked.success:
        return checked
    return await ctx.repos.unassign_user_role(scope.data, user_id, role_id)


@operation("get_user_roles")
async def get_user_roles(ctx: RequestContext, user_id: str) -> Result[List[Role]]:
    scope = require_tenant(ctx, "get_user_roles")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked

    role_ids = await ctx.repos.list_user_role_ids(scope.data, user_id)
    if not role_ids.success:
        return role_ids
    if not role_ids.data:
        return Result.ok([])
    roles = await ctx.repos.list_roles(scope.data)
    if not roles.success:
        return roles
    held = set(role_ids.data)
    return Result.ok([role for role in roles.data if role.id in held])
