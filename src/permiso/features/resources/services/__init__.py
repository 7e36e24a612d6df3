"""Resource services."""

from . import resource_service

__all__ = ["resource_service"]
