"""Permission resolution and grant services."""

from . import permission_resolver, permission_service

__all__ = ["permission_resolver", "permission_service"]
