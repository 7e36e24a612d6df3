"""Tenant services."""

from . import tenant_service

__all__ = ["tenant_service"]
