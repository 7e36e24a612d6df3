"""Role orchestration. Tenant-scoped; ROOT is rejected."""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ....core.exceptions import NotFoundError
from ....core.result import Result
from ....core.shared import RequestContext, operation, require_tenant, validate_ids, validate_input
from ...properties.entities import OwnerRef, Property
from ...properties.services import property_service
from ...users.entities import User
from ..entities import Role
from ..models import RoleCreateRequest, RoleUpdateRequest

logger = logging.getLogger(__name__)


@operation("create_role")
async def create_role(
    ctx: RequestContext,
    id: str,
    name: str,
    description: Optional[str] = None,
    properties: Optional[Sequence[Dict[str, Any]]] = None,
) -> Result[Role]:
    scope = require_tenant(ctx, "create_role")
    if not scope.success:
        return scope
    request = validate_input(
        RoleCreateRequest, id=id, name=name, description=description, properties=list(properties or [])
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

    created = await ctx.repos.create_role(
        tenant_id,
        Role(id=data.id, tenant_id=tenant_id, name=data.name, description=data.description),
        [p.to_input() for p in data.properties],
    )
    if not created.success:
        return created
    return await property_service.with_properties(ctx, tenant_id, created.data, OwnerRef.role(data.id))


@operation("get_role")
async def get_role(ctx: RequestContext, role_id: str, include_hidden: bool = False) -> Result[Role]:
    scope = require_tenant(ctx, "get_role")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked

    found = await ctx.repos.get_role(scope.data, role_id)
    if not found.success:
        return found
    if found.data is None:
        return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": scope.data}))
    return await property_service.with_properties(
        ctx, scope.data, found.data, OwnerRef.role(role_id), include_hidden
    )


@operation("list_roles")
async def list_roles(ctx: RequestContext, name: Optional[str] = None) -> Result[List[Role]]:
    scope = require_tenant(ctx, "list_roles")
    if not scope.success:
        return scope
    return await ctx.repos.list_roles(scope.data, name)


@operation("update_role")
async def update_role(
    ctx: RequestContext,
    role_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Result[Role]:
    scope = require_tenant(ctx, "update_role")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked
    request = validate_input(RoleUpdateRequest, name=name, description=description)
    if not request.success:
        return request

    updated = await ctx.repos.update_role(scope.data, role_id, request.data.name, request.data.description)
    if not updated.success:
        return updated
    if updated.data is None:
        return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": scope.data}))
    return await property_service.with_properties(ctx, scope.data, updated.data, OwnerRef.role(role_id))


@operation("delete_role")
async def delete_role(ctx: RequestContext, role_id: str) -> Result[bool]:
    """Delete a role; its holders lose every permission it granted."""
    scope = require_tenant(ctx, "delete_role")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked

    deleted = await ctx.repos.delete_role(scope.data, role_id)
    if not deleted.success:
        return deleted
    if not deleted.data:
        return Result.fail(NotFoundError("Role", role_id, details={"tenant_id": scope.data}))
    return deleted


@operation("get_role_users")
async def get_role_users(ctx: RequestContext, role_id: str) -> Result[List[User]]:
    scope = require_tenant(ctx, "get_role_users")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked

    user_ids = await ctx.repos.list_role_user_ids(scope.data, role_id)
    if not user_ids.success:
        return user_ids
    if not user_ids.data:
        return Result.ok([])
    users = await ctx.repos.list_users(scope.data)
    if not users.success:
        return users
    members = set(user_ids.data)
    return Result.ok([user for user in users.data if user.id in members])


# Role properties


@operation("get_role_properties")
async def get_role_properties(
    ctx: RequestContext, role_id: str, include_hidden: bool = False
) -> Result[List[Property]]:
    scope = require_tenant(ctx, "get_role_properties")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked
    return await property_service.list_properties(ctx, scope.data, OwnerRef.role(role_id), include_hidden)


@operation("get_role_property")
async def get_role_property(
    ctx: RequestContext, role_id: str, name: str, include_hidden: bool = False
) -> Result[Optional[Property]]:
    scope = require_tenant(ctx, "get_role_property")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked
    return await property_service.get_property(ctx, scope.data, OwnerRef.role(role_id), name, include_hidden)


@operation("set_role_property")
async def set_role_property(
    ctx: RequestContext, role_id: str, name: str, value: Any = None, hidden: bool = False
) -> Result[Property]:
    scope = require_tenant(ctx, "set_role_property")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked
    return await property_service.set_property(ctx, scope.data, OwnerRef.role(role_id), name, value, hidden)


@operation("delete_role_property")
async def delete_role_property(ctx: RequestContext, role_id: str, name: str) -> Result[bool]:
    scope = require_tenant(ctx, "delete_role_property")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked
    return await property_service.delete_property(ctx, scope.data, OwnerRef.role(role_id), name)
