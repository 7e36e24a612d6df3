"""Tenant orchestration.

Tenant records sit on the ROOT allow-list. Creating and listing tenants
requires the ROOT context; every other call here accepts ROOT or a context
for the target tenant itself. Deleting a tenant cascades to everything it
owns and needs the tenant id repeated as the safety key.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ....core.exceptions import NotFoundError, PreconditionFailedError
from ....core.result import Result
from ....core.shared import (
    RequestContext,
    operation,
    require_root,
    require_tenant_access,
    validate_ids,
    validate_input,
)
from ...properties.entities import OwnerRef, Property
from ...properties.services import property_service
from ...resources.entities import Resource
from ...roles.entities import Role
from ...users.entities import User
from ..entities import Tenant
from ..models import TenantCreateRequest, TenantUpdateRequest

logger = logging.getLogger(__name__)


def _tenant_scope(ctx: RequestContext, tenant_id: str, operation_name: str) -> Result[str]:
    checked = validate_ids(tenant_id=tenant_id)
    if not checked.success:
        return checked
    return require_tenant_access(ctx, tenant_id, operation_name)


async def _existing_tenant(ctx: RequestContext, tenant_id: str) -> Result[Tenant]:
    found = await ctx.repos.get_tenant(tenant_id)
    if not found.success:
        return found
    if found.data is None:
        return Result.fail(NotFoundError("Tenant", tenant_id))
    return found


@operation("create_tenant")
async def create_tenant(
    ctx: RequestContext,
    id: str,
    name: str,
    description: Optional[str] = None,
    properties: Optional[Sequence[Dict[str, Any]]] = None,
) -> Result[Tenant]:
    """Create a tenant with optional initial properties (ROOT only)."""
    allowed = require_root(ctx, "create_tenant")
    if not allowed.success:
        return allowed
    request = validate_input(
        TenantCreateRequest, id=id, name=name, description=description, properties=list(properties or [])
    )
    if not request.success:
        return request
    data = request.data

    created = await ctx.repos.create_tenant(
        Tenant(id=data.id, name=data.name, description=data.description),
        [p.to_input() for p in data.properties],
    )
    if not created.success:
        return created
    logger.info(f"Created tenant {data.id}")
    return await property_service.with_properties(ctx, data.id, created.data, OwnerRef.tenant(data.id))


@operation("get_tenant")
async def get_tenant(ctx: RequestContext, tenant_id: str, include_hidden: bool = False) -> Result[Tenant]:
    scope = _tenant_scope(ctx, tenant_id, "get_tenant")
    if not scope.success:
        return scope
    tenant = await _existing_tenant(ctx, tenant_id)
    if not tenant.success:
        return tenant
    return await property_service.with_properties(
        ctx, tenant_id, tenant.data, OwnerRef.tenant(tenant_id), include_hidden
    )


@operation("list_tenants")
async def list_tenants(ctx: RequestContext, name: Optional[str] = None) -> Result[List[Tenant]]:
    allowed = require_root(ctx, "list_tenants")
    if not allowed.success:
        return allowed
    return await ctx.repos.list_tenants(name)


@operation("update_tenant")
async def update_tenant(
    ctx: RequestContext,
    tenant_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Result[Tenant]:
    scope = _tenant_scope(ctx, tenant_id, "update_tenant")
    if not scope.success:
        return scope
    request = validate_input(TenantUpdateRequest, name=name, description=description)
    if not request.success:
        return request

    updated = await ctx.repos.update_tenant(tenant_id, request.data.name, request.data.description)
    if not updated.success:
        return updated
    if updated.data is None:
        return Result.fail(NotFoundError("Tenant", tenant_id))
    return await property_service.with_properties(ctx, tenant_id, updated.data, OwnerRef.tenant(tenant_id))


@operation("delete_tenant")
async def delete_tenant(ctx: RequestContext, tenant_id: str, safety_key: str) -> Result[bool]:
    """Delete a tenant and everything it owns.

    ``safety_key`` must equal ``tenant_id``; on mismatch nothing is touched.
    """
    scope = _tenant_scope(ctx, tenant_id, "delete_tenant")
    if not scope.success:
        return scope
    if safety_key != tenant_id:
        return Result.fail(PreconditionFailedError(
            "Safety key does not match the tenant id",
            details={"tenant_id": tenant_id},
        ))

    deleted = await ctx.repos.delete_tenant(tenant_id)
    if not deleted.success:
        return deleted
    if not deleted.data:
        return Result.fail(NotFoundError("Tenant", tenant_id))
    logger.info(f"Deleted tenant {tenant_id}")
    return deleted


# Tenant properties


@operation("get_tenant_properties")
async def get_tenant_properties(
    ctx: RequestContext, tenant_id: str, include_hidden: bool = False
) -> Result[List[Property]]:
    scope = _tenant_scope(ctx, tenant_id, "get_tenant_properties")
    if not scope.success:
        return scope
    return await property_service.list_properties(ctx, tenant_id, OwnerRef.tenant(tenant_id), include_hidden)


@operation("get_tenant_property")
async def get_tenant_property(
    ctx: RequestContext, tenant_id: str, name: str, include_hidden: bool = False
) -> Result[Optional[Property]]:
    scope = _tenant_scope(ctx, tenant_id, "get_tenant_property")
    if not scope.success:
        return scope
    return await property_service.get_property(
        ctx, tenant_id, OwnerRef.tenant(tenant_id), name, include_hidden
    )


@operation("set_tenant_property")
async def set_tenant_property(
    ctx: RequestContext, tenant_id: str, name: str, value: Any = None, hidden: bool = False
) -> Result[Property]:
    scope = _tenant_scope(ctx, tenant_id, "set_tenant_property")
    if not scope.success:
        return scope
    return await property_service.set_property(ctx, tenant_id, OwnerRef.tenant(tenant_id), name, value, hidden)


@operation("delete_tenant_property")
async def delete_tenant_property(ctx: RequestContext, tenant_id: str, name: str) -> Result[bool]:
    scope = _tenant_scope(ctx, tenant_id, "delete_tenant_property")
    if not scope.success:
        return scope
    return await property_service.delete_property(ctx, tenant_id, OwnerRef.tenant(tenant_id), name)


# Field resolution: explicit target tenant, allowed from ROOT


@operation("get_tenant_users")
async def get_tenant_users(ctx: RequestContext, tenant_id: str) -> Result[List[User]]:
    scope = _tenant_scope(ctx, tenant_id, "get_tenant_users")
    if not scope.success:
        return scope
    tenant = await _existing_tenant(ctx, tenant_id)
    if not tenant.success:
        return tenant
    return await ctx.repos.list_users(tenant_id)


@operation("get_tenant_roles")
async def get_tenant_roles(ctx: RequestContext, tenant_id: str) -> Result[List[Role]]:
    scope = _tenant_scope(ctx, tenant_id, "get_tenant_roles")
    if not scope.success:
        return scope
    tenant = await _existing_tenant(ctx, tenant_id)
    if not tenant.success:
        return tenant
    return await ctx.repos.list_roles(tenant_id)


@operation("get_tenant_resources")
async def get_tenant_resources(ctx: RequestContext, tenant_id: str) -> Result[List[Resource]]:
    scope = _tenant_scope(ctx, tenant_id, "get_tenant_resources")
    if not scope.success:
        return scope
    tenant = await _existing_tenant(ctx, tenant_id)
    if not tenant.success:
        return tenant
    return await ctx.repos.list_resources(tenant_id)
