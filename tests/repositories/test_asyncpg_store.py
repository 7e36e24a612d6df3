"""Tests for the asyncpg store against a fake database manager."""

from datetime import datetime, timezone

import asyncpg
import pytest

from permiso.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from permiso.features.properties.entities import OwnerKind, OwnerRef, PropertyInput
from permiso.features.roles.entities import Role
from permiso.features.tenants.entities import Tenant
from permiso.features.users.entities import User
from permiso.repositories import AsyncPGStore, PermisoStore
from permiso.repositories.asyncpg_store import escape_like_prefix

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


def tenant_row(tenant_id="acme", name="Acme"):
    return {"id": tenant_id, "name": name, "description": None, "created_at": NOW, "updated_at": NOW}


def grant_row(user_id="alice", resource_id="posts/42", action="edit"):
    return {
        "tenant_id": "acme",
        "user_id": user_id,
        "resource_id": resource_id,
        "action": action,
        "created_at": NOW,
    }


@pytest.fixture
def store(fake_db):
    return AsyncPGStore(fake_db)


class TestEscapeLikePrefix:
    """Test LIKE pattern construction."""

    @pytest.mark.parametrize(
        "prefix,pattern",
        [
            ("docs/", "docs/%"),
            ("", "%"),
            ("100%_done", "100\\%\\_done%"),
            ("a\\b", "a\\\\b%"),
        ],
    )
    def test_patterns(self, prefix, pattern):
        """Test LIKE escaping of special characters."""
        assert escape_like_prefix(prefix) == pattern


class TestAsyncPGStore:
    """Test SQL shape, row mapping and error translation."""

    def test_satisfies_protocol(self, store):
        """Test the store satisfies PermisoStore."""
        assert isinstance(store, PermisoStore)

    @pytest.mark.asyncio
    async def test_create_tenant_inserts_properties_in_transaction(self, store, fake_db):
        """Test tenant and properties are inserted in one transaction."""
        fake_db.connection.fetchrow.return_value = tenant_row()

        result = await store.create_tenant(
            Tenant(id="acme", name="Acme"), [PropertyInput("plan", {"tier": "pro", "seats": 5})]
        )

        assert result.data.id == "acme"
        assert fake_db.transactions == 1
        sql, rows = fake_db.connection.executemany.call_args[0]
        assert "INSERT INTO properties" in sql
        assert "$5::jsonb" in sql
        assert rows == [("tenant", "acme", "acme", "plan", '{"seats":5,"tier":"pro"}', False)]

    @pytest.mark.asyncio
    async def test_duplicate_tenant_is_conflict(self, store, fake_db):
        """Test a unique violation becomes ConflictError."""
        fake_db.connection.fetchrow.side_effect = asyncpg.UniqueViolationError("duplicate key")

        result = await store.create_tenant(Tenant(id="acme", name="Acme"))

        assert isinstance(result.error, ConflictError)

    @pytest.mark.asyncio
    async def test_missing_tenant_on_create_is_not_found(self, store, fake_db):
        """Test a foreign key violation becomes NotFoundError."""
        fake_db.connection.fetchrow.side_effect = asyncpg.ForeignKeyViolationError("fk")

        result = await store.create_role(Role(id="editor", tenant_id="ghost", name="Editor"))

        assert isinstance(result.error, NotFoundError)
        assert result.error.entity == "Tenant"

    @pytest.mark.asyncio
    async def test_driver_failure_is_storage_error(self, store, fake_db, caplog):
        """Test driver failures become a sanitised StorageError."""
        cause = asyncpg.InterfaceError("pool is closed")
        fake_db.fetchrow.side_effect = cause

        result = await store.get_user("acme", "alice")

        assert isinstance(result.error, StorageError)
        assert result.error.cause is cause
        assert "pool is closed" not in result.error.message
        assert "pool is closed" in caplog.text

    @pytest.mark.asyncio
    async def test_connection_loss_is_storage_error(self, store, fake_db):
        """Test connection loss becomes StorageError."""
        fake_db.fetch.side_effect = ConnectionResetError("reset")

        result = await store.list_roles("acme")

        assert isinstance(result.error, StorageError)

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store, fake_db):
        """Test getting an absent row returns None."""
        result = await store.get_tenant("ghost")

        assert result.success
        assert result.data is None

    @pytest.mark.asyncio
    async def test_every_tenant_scoped_query_filters_by_tenant(self, store, fake_db):
        """Test tenant-scoped queries filter by tenant_id."""
        await store.list_users("acme", identity_provider="okta")

        sql, *args = fake_db.fetch.call_args[0]
        assert "tenant_id = $1" in sql
        assert args == ["acme", "okta"]

    @pytest.mark.asyncio
    async def test_create_user_rejects_unknown_roles(self, store, fake_db):
        """Test creating a user with an unknown role inserts nothing."""
        fake_db.connection.fetch.return_value = [{"id": "editor"}]

        result = await store.create_user(User(id="alice", tenant_id="acme"), role_ids=["editor", "ghost"])

        assert isinstance(result.error, NotFoundError)
        assert result.error.entity_id == "ghost"
        fake_db.connection.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_delete_reports_affected_rows(self, store, fake_db):
        """Test deletes report whether a row was removed."""
        fake_db.execute.return_value = "DELETE 1"
        assert (await store.delete_tenant("acme")).data is True

        fake_db.execute.return_value = "DELETE 0"
        assert (await store.revoke_user_permission("acme", "alice", "posts/1", "read")).data is False

    @pytest.mark.asyncio
    async def test_delete_user_removes_properties_in_same_transaction(self, store, fake_db):
        """Test user delete removes the user row, then its properties, in one transaction."""
        fake_db.connection.execute.side_effect = ["DELETE 1", "DELETE 2"]

        result = await store.delete_user("acme", "alice")

        assert result.data is True
        assert fake_db.transactions == 1
        statements = [call[0][0] for call in fake_db.connection.execute.call_args_list]
        assert "DELETE FROM users" in statements[0]
        assert "DELETE FROM properties" in statements[1]

    @pytest.mark.asyncio
    async def test_delete_by_prefix_runs_in_one_transaction(self, store, fake_db):
        """Test prefix delete locks, then deletes resources before their grants and properties."""
        fake_db.connection.fetch.return_value = [{"id": "docs/guide"}, {"id": "docs/readme"}]
        fake_db.connection.execute.side_effect = ["DELETE 2", "DELETE 3", "DELETE 1", "DELETE 0"]

        result = await store.delete_resources_by_id_prefix("acme", "docs/")

        assert result.data == 2
        assert fake_db.transactions == 1
        select_sql, tenant_id, pattern = fake_db.connection.fetch.call_args[0]
        assert "FOR UPDATE" in select_sql
        assert (tenant_id, pattern) == ("acme", "docs/%")
        statements = [call[0][0] for call in fake_db.connection.execute.call_args_list]
        assert "DELETE FROM resources" in statements[0]
        assert "user_permissions" in statements[1]
        assert "role_permissions" in statements[2]
        assert "properties" in statements[3]

    @pytest.mark.asyncio
    async def test_delete_by_prefix_with_no_match(self, store, fake_db):
        """Test prefix delete with no match issues no deletes."""
        result = await store.delete_resources_by_id_prefix("acme", "nothing/")

        assert result.data == 0
        fake_db.connection.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_prefix_listing_uses_escaped_like(self, store, fake_db):
        """Test prefix listing escapes the LIKE pattern."""
        fake_db.fetch.return_value = [grant_row(resource_id="docs/readme")]

        result = await store.list_user_permissions_by_prefix("acme", "alice", "docs_")

        assert [g.resource_id for g in result.data] == ["docs/readme"]
        assert fake_db.fetch.call_args[0][-1] == "docs\\_%"

    @pytest.mark.asyncio
    async def test_role_permissions_skip_query_without_roles(self, store, fake_db):
        """Test an empty role list skips the query."""
        result = await store.list_role_permissions("acme", [])

        assert result.data == []
        fake_db.fetch.assert_not_called()

    @pytest.mark.asyncio
    async def test_grant_checks_user_then_reads_back_row(self, store, fake_db):
        """Test grant checks the user and reads back the stored row."""
        fake_db.connection.fetchval.return_value = 1
        fake_db.connection.fetchrow.return_value = grant_row()

        result = await store.grant_user_permission("acme", "alice", "posts/42", "edit")

        assert result.data.resource_id == "posts/42"
        insert_sql = fake_db.connection.execute.call_args[0][0]
        assert "ON CONFLICT DO NOTHING" in insert_sql

    @pytest.mark.asyncio
    async def test_grant_to_missing_user(self, store, fake_db):
        """Test granting to a missing user is NotFound."""
        fake_db.connection.fetchval.return_value = None

        result = await store.grant_user_permission("acme", "ghost", "posts/42", "edit")

        assert isinstance(result.error, NotFoundError)
        fake_db.connection.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_property_rows_decode_json(self, store, fake_db):
        """Test property rows decode their JSON value."""
        fake_db.fetch.return_value = [{
            "owner_type": "user",
            "owner_id": "alice",
            "name": "prefs",
            "value": '{"theme":"dark"}',
            "hidden": True,
            "created_at": NOW,
        }]

        result = await store.list_properties("acme", OwnerRef.user("alice"))

        prop = result.data[0]
        assert prop.owner.kind is OwnerKind.USER
        assert prop.value == {"theme": "dark"}
        assert prop.hidden is True

    @pytest.mark.asyncio
    async def test_set_property_upserts_under_owner_lock(self, store, fake_db):
        """Test set_property locks the owner row and upserts in one transaction."""
        fake_db.connection.fetchval.return_value = 1
        fake_db.connection.fetchrow.return_value = {
            "owner_type": "role",
            "owner_id": "editor",
            "name": "color",
            "value": '"red"',
            "hidden": False,
            "created_at": NOW,
        }

        result = await store.set_property("acme", OwnerRef.role("editor"), PropertyInput("color", "red"))

        assert result.data.value == "red"
        assert fake_db.transactions == 1
        lookup_sql, *lookup_args = fake_db.connection.fetchval.call_args[0]
        assert "FROM roles" in lookup_sql
        assert "FOR KEY SHARE" in lookup_sql
        assert lookup_args == ["acme", "editor"]
        sql = fake_db.connection.fetchrow.call_args[0][0]
        assert "ON CONFLICT (owner_type, tenant_id, owner_id, name)" in sql
        fake_db.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_set_property_on_missing_owner_is_not_found(self, store, fake_db):
        """Test set_property on a missing owner is NotFound and writes nothing."""
        fake_db.connection.fetchval.return_value = None

        result = await store.set_property("acme", OwnerRef.user("ghost"), PropertyInput("color", "red"))

        assert isinstance(result.error, NotFoundError)
        assert result.error.entity_id == "ghost"
        fake_db.connection.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [float("nan"), float("inf")])
    async def test_set_property_rejects_non_finite_value(self, store, fake_db, value):
        """Test a non-finite value fails before any statement runs."""
        result = await store.set_property("acme", OwnerRef.tenant("acme"), PropertyInput("x", value))

        assert isinstance(result.error, ValidationError)
        assert fake_db.transactions == 0
        fake_db.connection.fetchrow.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_with_rejected_property_writes_nothing(self, store, fake_db):
        """Test a rejected initial property fails before the transaction opens."""
        result = await store.create_tenant(
            Tenant(id="t1", name="T1"), [PropertyInput("ok", 1), PropertyInput("bad", float("nan"))]
        )

        assert isinstance(result.error, ValidationError)
        assert fake_db.transactions == 0
        fake_db.connection.fetchrow.assert_not_called()
        fake_db.connection.executemany.assert_not_called()
