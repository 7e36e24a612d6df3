"""User services."""

from . import user_service

__all__ = ["user_service"]
