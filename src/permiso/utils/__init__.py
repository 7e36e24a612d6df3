"""Utilities module for permiso."""

from .timezone import utc_now
from .uuid import generate_uuid_v7

__all__ = [
    "utc_now",
    "generate_uuid_v7",
]
