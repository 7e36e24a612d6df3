"""Database module for permiso."""

from .connection import DatabaseManager
from .schema import SCHEMA_STATEMENTS, ensure_schema

__all__ = [
    "DatabaseManager",
    "SCHEMA_STATEMENTS",
    "ensure_schema",
]
