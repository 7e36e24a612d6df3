"""Shared request plumbing."""

from .context import RequestContext, require_root, require_tenant, require_tenant_access
from .operation import operation
from .validation import Identifier, validate_ids, validate_input

__all__ = [
    "RequestContext",
    "require_root",
    "require_tenant",
    "require_tenant_access",
    "operation",
    "Identifier",
    "validate_ids",
    "validate_input",
]
