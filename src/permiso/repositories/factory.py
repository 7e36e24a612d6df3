"""Build the repository facade for the configured storage backend."""

import logging
from typing import Optional

from ..config.settings import PermisoSettings, get_settings
from ..database.connection import DatabaseManager
from .asyncpg_store import AsyncPGStore
from .memory_store import InMemoryStore
from .tenant_scoped import TenantScopedRepository

logger = logging.getLogger(__name__)


def create_repositories(
    settings: Optional[PermisoSettings] = None,
    database_manager: Optional[DatabaseManager] = None,
) -> TenantScopedRepository:
    """Create a TenantScopedRepository over the backend named in settings.

    The postgres backend reuses ``database_manager`` when given; otherwise a
    new manager is built from ``settings.database_url`` and its pool opens
    lazily on first use.
    """
    settings = settings or get_settings()

    if settings.storage_backend == "memory":
        logger.info("Using in-memory permiso store")
        return TenantScopedRepository(InMemoryStore())

    if database_manager is None:
        if not settings.database_url:
            raise ValueError("PERMISO_DATABASE_URL is required for the postgres storage backend")
        database_manager = DatabaseManager(settings.database_url, **settings.pool_config())

    logger.info("Using PostgreSQL permiso store")
    return TenantScopedRepository(AsyncPGStore(database_manager))
