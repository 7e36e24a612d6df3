"""Property bag operations shared by every owner kind.

The feature services resolve the tenant scope and pass it in; this module
validates input, checks that the owner exists, and applies the visibility
rule. A hidden property is invisible to default reads: it is left out of
lists and a single get reports it as absent. Reads and writes against a
missing owner fail with NotFound; deletes report whether a row went away.
"""

import logging
from dataclasses import replace
from typing import Any, List, Optional, TypeVar

from ....core.exceptions import NotFoundError
from ....core.result import Result
from ....core.shared import RequestContext, validate_ids, validate_input
from ..entities import OwnerKind, OwnerRef, Property
from ..models import PropertyRequest

logger = logging.getLogger(__name__)

E = TypeVar("E")

_OWNER_ENTITY = {
    OwnerKind.TENANT: "Tenant",
    OwnerKind.USER: "User",
    OwnerKind.ROLE: "Role",
    OwnerKind.RESOURCE: "Resource",
}


async def ensure_owner(ctx: RequestContext, tenant_id: str, owner: OwnerRef) -> Result[None]:
    """NotFound unless the owning entity exists in ``tenant_id``."""
    repos = ctx.repos
    if owner.kind is OwnerKind.TENANT:
        found = await repos.get_tenant(owner.id)
    elif owner.kind is OwnerKind.USER:
        found = await repos.get_user(tenant_id, owner.id)
    elif owner.kind is OwnerKind.ROLE:
        found = await repos.get_role(tenant_id, owner.id)
    else:
        found = await repos.get_resource(tenant_id, owner.id)
    if not found.success:
        return found
    if found.data is None:
        return Result.fail(NotFoundError(_OWNER_ENTITY[owner.kind], owner.id, details={"tenant_id": tenant_id}))
    return Result.ok()


async def list_properties(
    ctx: RequestContext, tenant_id: str, owner: OwnerRef, include_hidden: bool = False
) -> Result[List[Property]]:
    exists = await ensure_owner(ctx, tenant_id, owner)
    if not exists.success:
        return exists
    props = await ctx.repos.list_properties(tenant_id, owner)
    if not props.success:
        return props
    return Result.ok([p for p in props.data if p.is_visible(include_hidden)])


async def get_property(
    ctx: RequestContext, tenant_id: str, owner: OwnerRef, name: str, include_hidden: bool = False
) -> Result[Optional[Property]]:
    checked = validate_ids(name=name)
    if not checked.success:
        return checked
    exists = await ensure_owner(ctx, tenant_id, owner)
    if not exists.success:
        return exists
    prop = await ctx.repos.get_property(tenant_id, owner, name)
    if not prop.success:
        return prop
    if prop.data is None or not prop.data.is_visible(include_hidden):
        return Result.ok(None)
    return prop


async def set_property(
    ctx: RequestContext, tenant_id: str, owner: OwnerRef, name: str, value: Any = None, hidden: bool = False
) -> Result[Property]:
    request = validate_input(PropertyRequest, name=name, value=value, hidden=hidden)
    if not request.success:
        return request
    exists = await ensure_owner(ctx, tenant_id, owner)
    if not exists.success:
        return exists
    return await ctx.repos.set_property(tenant_id, owner, request.data.to_input())


async def delete_property(ctx: RequestContext, tenant_id: str, owner: OwnerRef, name: str) -> Result[bool]:
    checked = validate_ids(name=name)
    if not checked.success:
        return checked
    return await ctx.repos.delete_property(tenant_id, owner, name)


async def with_properties(
    ctx: RequestContext, tenant_id: str, entity: E, owner: OwnerRef, include_hidden: bool = False
) -> Result[E]:
    """Return ``entity`` with its visible properties attached."""
    props = await ctx.repos.list_properties(tenant_id, owner)
    if not props.success:
        return props
    visible = [p for p in props.data if p.is_visible(include_hidden)]
    return Result.ok(replace(entity, properties=visible))
