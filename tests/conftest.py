"""Pytest configuration and fixtures for permiso tests."""

from contextlib import asynccontextmanager
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from permiso.core.shared import RequestContext
from permiso.features.permissions.services import permission_service
from permiso.features.roles.services import role_service
from permiso.features.tenants.services import tenant_service
from permiso.features.users.services import user_service
from permiso.repositories import InMemoryStore, TenantScopedRepository


class FakeDatabaseManager:
    """Stand-in for DatabaseManager: pool-level calls and one shared connection."""

    def __init__(self):
        self.connection = AsyncMock()
        self.connection.fetch.return_value = []
        self.connection.fetchrow.return_value = None
        self.connection.execute.return_value = "DELETE 0"
        self.fetch = AsyncMock(return_value=[])
        self.fetchrow = AsyncMock(return_value=None)
        self.fetchval = AsyncMock(return_value=None)
        self.execute = AsyncMock(return_value="DELETE 0")
        self.transactions = 0

    @asynccontextmanager
    async def acquire(self):
        yield self.connection

    @asynccontextmanager
    async def transaction(self):
        self.transactions += 1
        yield self.connection


@pytest.fixture
def fake_db():
    """Fake database manager for asyncpg store tests."""
    return FakeDatabaseManager()


@pytest.fixture
def memory_store():
    """Empty in-memory store."""
    return InMemoryStore()


@pytest.fixture
def repos(memory_store):
    """Tenant-scoped facade over the in-memory store."""
    return TenantScopedRepository(memory_store)


@pytest.fixture
def root_ctx(repos):
    """ROOT request context."""
    return RequestContext.root(repos)


@pytest.fixture
def acme_ctx(repos):
    """Request context for tenant acme."""
    return RequestContext.for_tenant(repos, "acme")


@pytest.fixture
def globex_ctx(repos):
    """Request context for tenant globex."""
    return RequestContext.for_tenant(repos, "globex")


@pytest_asyncio.fixture
async def acme(root_ctx):
    """Tenant acme with user alice, role editor and alice holding editor."""
    (await tenant_service.create_tenant(root_ctx, "acme", "Acme Corp")).unwrap()
    ctx = RequestContext.for_tenant(root_ctx.repos, "acme")
    (await role_service.create_role(ctx, "editor", "Editor")).unwrap()
    (await user_service.create_user(ctx, "alice")).unwrap()
    (await user_service.assign_user_role(ctx, "alice", "editor")).unwrap()
    return ctx


@pytest_asyncio.fixture
async def globex(root_ctx):
    """Second tenant globex with its own user alice."""
    (await tenant_service.create_tenant(root_ctx, "globex", "Globex")).unwrap()
    ctx = RequestContext.for_tenant(root_ctx.repos, "globex")
    (await user_service.create_user(ctx, "alice")).unwrap()
    (await permission_service.grant_user_permission(ctx, "alice", "posts/42", "edit")).unwrap()
    return ctx
