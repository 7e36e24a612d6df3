"""Request context entity.

Every orchestration and engine call receives one immutable RequestContext,
threaded explicitly. A context without a tenant id is the ROOT context.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Optional

from ...utils.uuid import generate_uuid_v7
from ..exceptions import IsolationViolationError
from ..result import Result

if TYPE_CHECKING:
    from ...repositories.tenant_scoped import TenantScopedRepository


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped tenant and repository handle."""

    repos: "TenantScopedRepository"
    tenant_id: Optional[str] = None
    request_id: str = field(default_factory=generate_uuid_v7)

    @classmethod
    def root(cls, repos: "TenantScopedRepository") -> "RequestContext":
        return cls(repos=repos)

    @classmethod
    def for_tenant(cls, repos: "TenantScopedRepository", tenant_id: str) -> "RequestContext":
        return cls(repos=repos, tenant_id=tenant_id)

    @property
    def is_root(self) -> bool:
        """Check if this is the ROOT (cross-tenant administrative) context."""
        return not self.tenant_id

    def can_access_tenant(self, tenant_id: str) -> bool:
        """ROOT reaches every tenant; a tenant context only its own."""
        return self.is_root or self.tenant_id == tenant_id


def require_tenant(ctx: RequestContext, operation: str) -> Result[str]:
    """Return the context's tenant id, or IsolationViolation for ROOT."""
    if ctx.is_root:
        return Result.fail(IsolationViolationError(
            f"{operation} requires a tenant context",
            details={"operation": operation},
        ))
    return Result.ok(ctx.tenant_id)


def require_tenant_access(ctx: RequestContext, tenant_id: str, operation: str) -> Result[str]:
    """Allow ROOT, or a tenant context addressing its own tenant."""
    if not ctx.can_access_tenant(tenant_id):
        return Result.fail(IsolationViolationError(
            f"{operation} cannot reach tenant '{tenant_id}' from tenant '{ctx.tenant_id}'",
            details={"operation": operation, "tenant_id": ctx.tenant_id, "target": tenant_id},
        ))
    return Result.ok(tenant_id)


def require_root(ctx: RequestContext, operation: str) -> Result[None]:
    if not ctx.is_root:
        return Result.fail(IsolationViolationError(
            f"{operation} is only available to the ROOT context",
            details={"operation": operation, "tenant_id": ctx.tenant_id},
        ))
    return Result.ok()
