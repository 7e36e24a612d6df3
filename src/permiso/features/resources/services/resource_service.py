"""Resource orchestration.

Deleting a resource, singly or by id prefix, removes every grant naming it.
Both destructive calls need a safety key equal to the target: the resource
id, or the prefix itself for bulk deletion.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ....core.exceptions import NotFoundError, PreconditionFailedError
from ....core.result import Result
from ....core.shared import RequestContext, operation, require_tenant, validate_ids, validate_input
from ...permissions.services import permission_resolver
from ...properties.entities import OwnerRef, Property
from ...properties.services import property_service
from ..entities import Resource
from ..models import ResourceCreateRequest, ResourceUpdateRequest

logger = logging.getLogger(__name__)


@operation("create_resource")
async def create_resource(
    ctx: RequestContext,
    id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    properties: Optional[Sequence[Dict[str, Any]]] = None,
) -> Result[Resource]:
    scope = require_tenant(ctx, "create_resource")
    if not scope.success:
        return scope
    request = validate_input(
        ResourceCreateRequest, id=id, name=name, description=description, properties=list(properties or [])
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

    created = await ctx.repos.create_resource(
        tenant_id,
        Resource(id=data.id, tenant_id=tenant_id, name=data.name, description=data.description),
        [p.to_input() for p in data.properties],
    )
    if not created.success:
        return created
    return await property_service.with_properties(ctx, tenant_id, created.data, OwnerRef.resource(data.id))


@operation("get_resource")
async def get_resource(ctx: RequestContext, resource_id: str, include_hidden: bool = False) -> Result[Resource]:
    scope = require_tenant(ctx, "get_resource")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked

    found = await ctx.repos.get_resource(scope.data, resource_id)
    if not found.success:
        return found
    if found.data is None:
        return Result.fail(NotFoundError("Resource", resource_id, details={"tenant_id": scope.data}))
    return await property_service.with_properties(
        ctx, scope.data, found.data, OwnerRef.resource(resource_id), include_hidden
    )


@operation("list_resources")
async def list_resources(ctx: RequestContext, id_prefix: Optional[str] = None) -> Result[List[Resource]]:
    """Resources of the tenant ordered by id, optionally only those starting with ``id_prefix``."""
    scope = require_tenant(ctx, "list_resources")
    if not scope.success:
        return scope
    return await ctx.repos.list_resources(scope.data, id_prefix)


@operation("update_resource")
async def update_resource(
    ctx: RequestContext,
    resource_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
) -> Result[Resource]:
    scope = require_tenant(ctx, "update_resource")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    request = validate_input(ResourceUpdateRequest, name=name, description=description)
    if not request.success:
        return request

    updated = await ctx.repos.update_resource(
        scope.data, resource_id, request.data.name, request.data.description
    )
    if not updated.success:
        return updated
    if updated.data is None:
        return Result.fail(NotFoundError("Resource", resource_id, details={"tenant_id": scope.data}))
    return await property_service.with_properties(
        ctx, scope.data, updated.data, OwnerRef.resource(resource_id)
    )


@operation("delete_resource")
async def delete_resource(ctx: RequestContext, resource_id: str, safety_key: str) -> Result[bool]:
    scope = require_tenant(ctx, "delete_resource")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    if safety_key != resource_id:
        return Result.fail(PreconditionFailedError(
            "Safety key does not match the resource id",
            details={"resource_id": resource_id},
        ))

    deleted = await ctx.repos.delete_resource(scope.data, resource_id)
    if not deleted.success:
        return deleted
    if not deleted.data:
        return Result.fail(NotFoundError("Resource", resource_id, details={"tenant_id": scope.data}))
    return deleted


@operation("delete_resources_by_id_prefix")
async def delete_resources_by_id_prefix(ctx: RequestContext, id_prefix: str, safety_key: str) -> Result[int]:
    """Bulk delete guarded by a safety key equal to the prefix.

    An empty prefix would match the whole tenant and is rejected here; the
    engine call underneath accepts it.
    """
    scope = require_tenant(ctx, "delete_resources_by_id_prefix")
    if not scope.success:
        return scope
    checked = validate_ids(id_prefix=id_prefix)
    if not checked.success:
        return checked
    if safety_key != id_prefix:
        return Result.fail(PreconditionFailedError(
            "Safety key does not match the id prefix",
            details={"id_prefix": id_prefix},
        ))
    return await permission_resolver.delete_resources_by_id_prefix(ctx, id_prefix)


# Resource properties


@operation("get_resource_properties")
async def get_resource_properties(
    ctx: RequestContext, resource_id: str, include_hidden: bool = False
) -> Result[List[Property]]:
    scope = require_tenant(ctx, "get_resource_properties")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    return await property_service.list_properties(
        ctx, scope.data, OwnerRef.resource(resource_id), include_hidden
    )


@operation("get_resource_property")
async def get_resource_property(
    ctx: RequestContext, resource_id: str, name: str, include_hidden: bool = False
) -> Result[Optional[Property]]:
    scope = require_tenant(ctx, "get_resource_property")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    return await property_service.get_property(
        ctx, scope.data, OwnerRef.resource(resource_id), name, include_hidden
    )


@operation("set_resource_property")
async def set_resource_property(
    ctx: RequestContext, resource_id: str, name: str, value: Any = None, hidden: bool = False
) -> Result[Property]:
    scope = require_tenant(ctx, "set_resource_property")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    return await property_service.set_property(
        ctx, scope.data, OwnerRef.resource(resource_id), name, value, hidden
    )


@operation("delete_resource_property")
async def delete_resource_property(ctx: RequestContext, resource_id: str, name: str) -> Result[bool]:
    scope = require_tenant(ctx, "delete_resource_property")
    if not scope.success:
        return scope
    checked = validate_ids(resource_id=resource_id)
    if not checked.success:
        return checked
    return await property_service.delete_property(ctx, scope.data, OwnerRef.resource(resource_id), name)
