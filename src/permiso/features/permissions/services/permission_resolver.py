"""Permission resolution engine.

Answers "may this user do this" and "what may this user do" from current
grant state. A user's permissions are the union of their direct grants and
the grants of every role they hold right now. There are no deny rows and no
caching; every call reads the store.

Resource ids and actions are compared verbatim. Prefix matching exists only
in the ``*_by_prefix`` variants and never in ``has_permission``.
"""

import logging
from typing import List, Optional

from ....core.result import Result
from ....core.shared import RequestContext, operation, require_tenant, validate_ids, validate_input
from ..entities import EffectivePermission
from ..models import PermissionFilter, PrefixFilter

logger = logging.getLogger(__name__)


@operation("has_permission")
async def has_permission(ctx: RequestContext, user_id: str, resource_id: str, action: str) -> Result[bool]:
    """True iff a direct or role-inherited grant matches (resource_id, action) exactly."""
    scope = require_tenant(ctx, "has_permission")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id, resource_id=resource_id, action=action)
    if not checked.success:
        return checked
    tenant_id = scope.data

    direct = await ctx.repos.list_user_permissions(tenant_id, user_id, resource_id, action)
    if not direct.success:
        return direct
    if direct.data:
        return Result.ok(True)

    role_ids = await ctx.repos.list_user_role_ids(tenant_id, user_id)
    if not role_ids.success:
        return role_ids
    if not role_ids.data:
        return Result.ok(False)

    inherited = await ctx.repos.list_role_permissions(tenant_id, role_ids.data, resource_id, action)
    if not inherited.success:
        return inherited
    return Result.ok(bool(inherited.data))


@operation("get_effective_permissions")
async def get_effective_permissions(
    ctx: RequestContext,
    user_id: str,
    resource_id: Optional[str] = None,
    action: Optional[str] = None,
) -> Result[List[EffectivePermission]]:
    """Every grant reachable by the user, optionally narrowed by exact filters.

    Duplicates across sources are kept: a direct grant and two roles granting
    the same pair give three entries.
    """
    scope = require_tenant(ctx, "get_effective_permissions")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    filters = validate_input(PermissionFilter, resource_id=resource_id, action=action)
    if not filters.success:
        return filters
    tenant_id = scope.data

    direct = await ctx.repos.list_user_permissions(tenant_id, user_id, resource_id, action)
    if not direct.success:
        return direct

    role_ids = await ctx.repos.list_user_role_ids(tenant_id, user_id)
    if not role_ids.success:
        return role_ids

    inherited = await ctx.repos.list_role_permissions(tenant_id, role_ids.data, resource_id, action)
    if not inherited.success:
        return inherited

    return Result.ok(_aggregate(direct.data, inherited.data))


@operation("get_effective_permissions_by_prefix")
async def get_effective_permissions_by_prefix(
    ctx: RequestContext,
    user_id: str,
    resource_id_prefix: str,
    action: Optional[str] = None,
) -> Result[List[EffectivePermission]]:
    """Same aggregation with ``resource_id.startswith(prefix)``; action stays exact."""
    scope = require_tenant(ctx, "get_effective_permissions_by_prefix")
    if not scope.success:
        return scope
    checked = validate_ids(user_id=user_id)
    if not checked.success:
        return checked
    filters = validate_input(PrefixFilter, resource_id_prefix=resource_id_prefix, action=action)
    if not filters.success:
        return filters
    tenant_id = scope.data

    direct = await ctx.repos.list_user_permissions_by_prefix(tenant_id, user_id, resource_id_prefix)
    if not direct.success:
        return direct

    role_ids = await ctx.repos.list_user_role_ids(tenant_id, user_id)
    if not role_ids.success:
        return role_ids

    inherited = await ctx.repos.list_role_permissions_by_prefix(tenant_id, role_ids.data, resource_id_prefix)
    if not inherited.success:
        return inherited

    user_grants = [g for g in direct.data if action is None or g.action == action]
    role_grants = [g for g in inherited.data if action is None or g.action == action]
    return Result.ok(_aggregate(user_grants, role_grants))


@operation("delete_resources_by_id_prefix")
async def delete_resources_by_id_prefix(ctx: RequestContext, id_prefix: str) -> Result[int]:
    """Atomically delete resources starting with ``id_prefix`` and every grant naming them.

    Returns the number of resources removed; zero is a success.
    """
    scope = require_tenant(ctx, "delete_resources_by_id_prefix")
    if not scope.success:
        return scope
    filters = validate_input(PrefixFilter, resource_id_prefix=id_prefix)
    if not filters.success:
        return filters

    deleted = await ctx.repos.delete_resources_by_id_prefix(scope.data, id_prefix)
    if deleted.success:
        logger.info(f"Deleted {deleted.data} resources with prefix '{id_prefix}' in tenant {scope.data}")
    return deleted


def _aggregate(user_grants, role_grants) -> List[EffectivePermission]:
    effective = [EffectivePermission.from_user_permission(g) for g in user_grants]
    effective.extend(EffectivePermission.from_role_permission(g) for g in role_grants)
    return sorted(effective, key=EffectivePermission.sort_key)
