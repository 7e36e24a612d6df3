"""Grant mutations and grant listings.

Granting is idempotent: repeating a grant returns the stored row without
creating another. Revoking reports whether a row was removed. Grants may name
resources that have not been registered yet.
"""

import logging
from typing import List, Optional

from ....core.result import Result
from ....core.shared import RequestContext, operation, require_tenant, validate_ids, validate_input
from ..entities import RolePermission, UserPermission, ResourcePermissions
from ..models import GrantRequest, PermissionFilter

logger = logging.getLogger(__name__)


@operation("grant_user_permission")
async def grant_user_permission(
    ctx: RequestContext, user_id: str, resource_id: str, action: str
) -> Result[UserPermission]:
    scope = require_tenant(ctx, "grant_user_permission")
    if not scope.success:
        return scope
    request = validate_input(GrantRequest, subject_id=user_id, resource_id=resource_id, action=action)
    if not request.success:
        return request
    return await ctx.repos.grant_user_permission(scope.data, user_id, resource_id, action)


@operation("revoke_user_permission")
async def revoke_user_permission(ctx: RequestContext, user_id: str, resource_id: str, action: str) -> Result[bool]:
    scope = require_tenant(ctx, "revoke_user_permission")
    if not scope.success:
        return scope
    request = validate_input(GrantRequest, subject_id=user_id, resource_id=resource_id, action=action)
    if not request.success:
        return request
    return await ctx.repos.revoke_user_permission(scope.data, user_id, resource_id, action)


@operation("grant_role_permission")
async def grant_role_permission(
    ctx: RequestContext, role_id: str, resource_id: str, action: str
) -> Result[RolePermission]:
    scope = require_tenant(ctx, "grant_role_permission")
    if not scope.success:
        return scope
    request = validate_input(GrantRequest, subject_id=role_id, resource_id=resource_id, action=action)
    if not request.success:
        return request
    return await ctx.repos.grant_role_permission(scope.data, role_id, resource_id, action)


@operation("revoke_role_permission")
async def revoke_role_permission(ctx: RequestContext, role_id: str, resource_id: str, action: str) -> Result[bool]:
    scope = require_tenant(ctx, "revoke_role_permission")
    if not scope.success:
        return scope
    request = validate_input(GrantRequest, subject_id=role_id, resource_id=resource_id, action=action)
    if not request.success:
        return request
    return await ctx.repos.revoke_role_permission(scope.data, role_id, resource_id, action)


@operation("get_user_permissions")
async def get_user_permissions(
    ctx: RequestContext,
    user_id: str,
    resource_id: Optional[str] = None,
    action: Optional[str] = None,
) -> Result[List[UserPermission]]:
    """Direct grants of a user only; see get_effective_permissions for roles."""
    scope = require_tenant(ctx, "get_user_permissions")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    filters = validate_input(PermissionFilter, resource_id=resource_id, action=action)
    if not filters.success:
        return filters
    return await ctx.repos.list_user_permissions(scope.data, user_id, resource_id, action)


@operation("get_role_permissions")
async def get_role_permissions(
    ctx: RequestContext,
    role_id: str,
    resource_id: Optional[str] = None,
    action: Optional[str] = None,
) -> Result[List[RolePermission]]:
    scope = require_tenant(ctx, "get_role_permissions")
    if not scope.success:
        return scope
    checked = validate_ids(role_id=role_id)
    if not checked.success:
        return checked
    filters = validate_input(PermissionFilter, resource_id=resource_id, action=action)
    if not filters.success:
        return filters
    return await ctx.repos.list_role_permissions(scope.data, [role_id], resource_id, action)


@operation("get_permissions_by_resource")
async def get_permissions_by_resource(ctx: RequestContext, resource_id: str) -> Result[ResourcePermissions]:
    """Every user and role grant naming ``resource_id``."""
    scope = require_tenant(ctx, "get_permissions_by_resource")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    return await ctx.repos.list_permissions_by_resource(scope.data, resource_id)
