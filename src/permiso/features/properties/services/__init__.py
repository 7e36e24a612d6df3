"""Property bag services."""

from . import property_service

__all__ = ["property_service"]
