"""Storage contracts, implementations and the tenant-scoped facade."""

from .protocols import EntityStore, RelationshipStore, PermisoStore
from .memory_store import InMemoryStore
from .asyncpg_store import AsyncPGStore
from .tenant_scoped import TenantScopedRepository
from .factory import create_repositories

__all__ = [
    "EntityStore",
    "RelationshipStore",
    "PermisoStore",
    "InMemoryStore",
    "AsyncPGStore",
    "TenantScopedRepository",
    "create_repositories",
]
