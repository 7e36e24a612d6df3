"""Role services."""

from . import role_service

__all__ = ["role_service"]
