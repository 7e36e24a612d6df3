"""Tests for repository construction from settings."""

import pytest

from permiso.config import PermisoSettings
from permiso.repositories import AsyncPGStore, InMemoryStore, TenantScopedRepository, create_repositories


class TestCreateRepositories:
    """Test backend selection."""

    def test_memory_backend(self):
        """Test the memory backend builds an InMemoryStore."""
        repos = create_repositories(PermisoSettings(_env_file=None, storage_backend="memory"))

        assert isinstance(repos, TenantScopedRepository)
        assert isinstance(repos.store, InMemoryStore)

    def test_postgres_backend_builds_manager_from_settings(self):
        """Test the postgres backend builds a manager from settings."""
        settings = PermisoSettings(
            _env_file=None,
            storage_backend="postgres",
            database_url="postgresql+asyncpg://permiso@localhost/permiso",
            db_pool_min_size=1,
            db_pool_max_size=4,
        )

        repos = create_repositories(settings)

        assert isinstance(repos.store, AsyncPGStore)
        manager = repos.store.db
        assert manager.dsn == "postgresql://permiso@localhost/permiso"
        assert manager.pool_config["max_size"] == 4
        assert manager.pool is None

    def test_postgres_backend_reuses_given_manager(self, fake_db):
        """Test the postgres backend reuses a supplied manager."""
        repos = create_repositories(
            PermisoSettings(_env_file=None, storage_backend="postgres"), database_manager=fake_db
        )

        assert repos.store.db is fake_db

    def test_postgres_backend_requires_url(self):
        """Test the postgres backend needs a database URL."""
        with pytest.raises(ValueError, match="DATABASE_URL"):
            create_repositories(PermisoSettings(_env_file=None, storage_backend="postgres"))
