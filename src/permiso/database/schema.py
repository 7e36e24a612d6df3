"""PostgreSQL table layout for the asyncpg store.

Every tenant-owned table is keyed by (tenant_id, ...) so point lookups and
tenant filters share one index. Grant tables and resources carry a
``text_pattern_ops`` index on (tenant_id, resource id) so prefix matches run
as index range scans instead of sequential scans.

``ensure_schema`` applies the DDL idempotently for bootstrap and tests; it
is not a migration tool.
"""

import logging

logger = logging.getLogger(__name__)


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS tenants (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS users (
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        id TEXT NOT NULL,
        identity_provider TEXT,
        identity_provider_user_id TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (tenant_id, id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_users_identity
        ON users (tenant_id, identity_provider, identity_provider_user_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS roles (
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        id TEXT NOT NULL,
        name TEXT NOT NULL,
        description TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (tenant_id, id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS resources (
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        id TEXT NOT NULL,
        name TEXT,
        description TEXT,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (tenant_id, id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_resources_id_prefix
        ON resources (tenant_id, id text_pattern_ops)
    """,
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        tenant_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        role_id TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (tenant_id, user_id, role_id),
        FOREIGN KEY (tenant_id, user_id) REFERENCES users(tenant_id, id) ON DELETE CASCADE,
        FOREIGN KEY (tenant_id, role_id) REFERENCES roles(tenant_id, id) ON DELETE CASCADE
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_user_roles_role
        ON user_roles (tenant_id, role_id)
    """,
    """
    CREATE TABLE IF NOT EXISTS user_permissions (
        tenant_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        resource_id TEXT NOT NULL,
        action TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (tenant_id, user_id, resource_id, action),
        FOREIGN KEY (tenant_id, user_id) REFERENCES users(tenant_id, id) ON DELETE CASCADE
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_user_permissions_resource
        ON user_permissions (tenant_id, resource_id text_pattern_ops)
    """,
    """
    CREATE TABLE IF NOT EXISTS role_permissions (
        tenant_id TEXT NOT NULL,
        role_id TEXT NOT NULL,
        resource_id TEXT NOT NULL,
        action TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (tenant_id, role_id, resource_id, action),
        FOREIGN KEY (tenant_id, role_id) REFERENCES roles(tenant_id, id) ON DELETE CASCADE
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_role_permissions_resource
        ON role_permissions (tenant_id, resource_id text_pattern_ops)
    """,
    """
    CREATE TABLE IF NOT EXISTS properties (
        owner_type TEXT NOT NULL,
        tenant_id TEXT NOT NULL REFERENCES tenants(id) ON DELETE CASCADE,
        owner_id TEXT NOT NULL,
        name TEXT NOT NULL,
        value JSONB NOT NULL,
        hidden BOOLEAN NOT NULL DEFAULT FALSE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (owner_type, tenant_id, owner_id, name)
    )
    """,
)


async def ensure_schema(database_manager) -> None:
    """Create every permiso table and index that does not exist yet."""
    async with database_manager.transaction() as conn:
        for statement in SCHEMA_STATEMENTS:
            await conn.execute(statement)
    logger.info(f"Ensured permiso schema ({len(SCHEMA_STATEMENTS)} statements)")
