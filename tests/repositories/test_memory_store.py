"""Tests for the in-memory store."""

import asyncio

import pytest
import pytest_asyncio

from permiso.core.exceptions import ConflictError, NotFoundError, ValidationError
from permiso.features.properties.entities import OwnerRef, PropertyInput
from permiso.features.resources.entities import Resource
from permiso.features.roles.entities import Role
from permiso.features.tenants.entities import Tenant
from permiso.features.users.entities import User
from permiso.repositories import InMemoryStore, PermisoStore


@pytest_asyncio.fixture
async def store():
    store = InMemoryStore()
    await store.create_tenant(Tenant(id="acme", name="Acme"), [PropertyInput("plan", "pro")])
    await store.create_tenant(Tenant(id="globex", name="Globex"))
    await store.create_role(Role(id="editor", tenant_id="acme", name="Editor"))
    await store.create_user(User(id="alice", tenant_id="acme"), role_ids=["editor"])
    return store


class TestInMemoryStore:
    """Test storage contract behaviour."""

    def test_satisfies_protocol(self):
        """Test the store satisfies PermisoStore."""
        assert isinstance(InMemoryStore(), PermisoStore)

    @pytest.mark.asyncio
    async def test_duplicate_create_conflicts(self, store):
        """Test creating a duplicate user conflicts."""
        result = await store.create_user(User(id="alice", tenant_id="acme"))

        assert isinstance(result.error, ConflictError)

    @pytest.mark.asyncio
    async def test_same_id_in_other_tenant_is_independent(self, store):
        """Test the same id in another tenant is a separate entity."""
        result = await store.create_user(User(id="alice", tenant_id="globex"))

        assert result.success
        assert (await store.list_users("globex")).data[0].tenant_id == "globex"
        assert (await store.list_user_role_ids("globex", "alice")).data == []

    @pytest.mark.asyncio
    async def test_create_user_with_unknown_role(self, store):
        """Test creating a user with an unknown role fails."""
        result = await store.create_user(User(id="bob", tenant_id="acme"), role_ids=["ghost"])

        assert isinstance(result.error, NotFoundError)
        assert (await store.get_user("acme", "bob")).data is None

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self, store):
        """Test getting an absent entity returns None."""
        result = await store.get_role("acme", "missing")

        assert result.success
        assert result.data is None

    @pytest.mark.asyncio
    async def test_update_keeps_unspecified_fields(self, store):
        """Test update leaves unspecified fields alone."""
        await store.update_role("acme", "editor", description="Can edit")
        result = await store.update_role("acme", "editor", name="Editors")

        assert result.data.name == "Editors"
        assert result.data.description == "Can edit"
        assert (await store.update_role("acme", "ghost", name="x")).data is None

    @pytest.mark.asyncio
    async def test_lists_ordered_by_id(self, store):
        """Test lists are ordered by id."""
        for resource_id in ["docs/b", "blog/a", "docs/a"]:
            await store.create_resource(Resource(id=resource_id, tenant_id="acme"))

        ids = [r.id for r in (await store.list_resources("acme")).data]
        prefixed = [r.id for r in (await store.list_resources("acme", "docs/")).data]

        assert ids == ["blog/a", "docs/a", "docs/b"]
        assert prefixed == ["docs/a", "docs/b"]

    @pytest.mark.asyncio
    async def test_grant_is_idempotent(self, store):
        """Test granting twice stores one grant."""
        first = await store.grant_user_permission("acme", "alice", "posts/1", "read")
        second = await store.grant_user_permission("acme", "alice", "posts/1", "read")

        assert first.data == second.data
        assert len((await store.list_user_permissions("acme", "alice")).data) == 1

    @pytest.mark.asyncio
    async def test_grant_to_missing_subject(self, store):
        """Test granting to a missing subject is NotFound."""
        user = await store.grant_user_permission("acme", "ghost", "posts/1", "read")
        role = await store.grant_role_permission("acme", "ghost", "posts/1", "read")

        assert isinstance(user.error, NotFoundError)
        assert isinstance(role.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_revoke_reports_removal(self, store):
        """Test revoke reports whether a grant was removed."""
        await store.grant_role_permission("acme", "editor", "posts/1", "edit")

        assert (await store.revoke_role_permission("acme", "editor", "posts/1", "edit")).data is True
        assert (await store.revoke_role_permission("acme", "editor", "posts/1", "edit")).data is False

    @pytest.mark.asyncio
    async def test_role_permissions_for_empty_role_list(self, store):
        """Test an empty role list has no permissions."""
        await store.grant_role_permission("acme", "editor", "posts/1", "edit")

        assert (await store.list_role_permissions("acme", [])).data == []

    @pytest.mark.asyncio
    async def test_set_property_upserts(self, store):
        """Test set_property overwrites and keeps created_at."""
        owner = OwnerRef.user("alice")
        first = await store.set_property("acme", owner, PropertyInput("team", "red"))
        second = await store.set_property("acme", owner, PropertyInput("team", "blue", hidden=True))

        props = (await store.list_properties("acme", owner)).data
        assert [(p.name, p.value, p.hidden) for p in props] == [("team", "blue", True)]
        assert second.data.created_at == first.data.created_at

    @pytest.mark.asyncio
    async def test_delete_user_cascades(self, store):
        """Test deleting a user removes memberships, grants and properties."""
        await store.grant_user_permission("acme", "alice", "posts/1", "read")
        await store.set_property("acme", OwnerRef.user("alice"), PropertyInput("team", "red"))

        assert (await store.delete_user("acme", "alice")).data is True
        assert (await store.list_role_user_ids("acme", "editor")).data == []
        assert (await store.list_user_permissions("acme", "alice")).data == []
        assert (await store.list_properties("acme", OwnerRef.user("alice"))).data == []
        assert (await store.delete_user("acme", "alice")).data is False

    @pytest.mark.asyncio
    async def test_delete_role_cascades(self, store):
        """Test deleting a role removes its grants and memberships."""
        await store.grant_role_permission("acme", "editor", "posts/1", "edit")

        await store.delete_role("acme", "editor")

        assert (await store.list_user_role_ids("acme", "alice")).data == []
        assert (await store.list_role_permissions("acme", ["editor"])).data == []

    @pytest.mark.asyncio
    async def test_delete_resources_by_prefix(self, store):
        """Test prefix delete removes matching resources only."""
        for resource_id in ["docs/readme", "docs/guide", "blog/post1"]:
            await store.create_resource(
                Resource(id=resource_id, tenant_id="acme"), [PropertyInput("owner", "alice")]
            )
            await store.grant_user_permission("acme", "alice", resource_id, "read")
            await store.grant_role_permission("acme", "editor", resource_id, "edit")

        deleted = await store.delete_resources_by_id_prefix("acme", "docs/")

        assert deleted.data == 2
        assert [r.id for r in (await store.list_resources("acme")).data] == ["blog/post1"]
        assert [g.resource_id for g in (await store.list_user_permissions("acme", "alice")).data] == ["blog/post1"]
        assert [g.resource_id for g in (await store.list_role_permissions("acme", ["editor"])).data] == ["blog/post1"]
        assert (await store.list_properties("acme", OwnerRef.resource("docs/readme"))).data == []
        assert (await store.delete_resources_by_id_prefix("acme", "docs/")).data == 0

    @pytest.mark.asyncio
    async def test_delete_tenant_cascades_only_that_tenant(self, store):
        """Test deleting a tenant leaves other tenants intact."""
        await store.create_user(User(id="alice", tenant_id="globex"))
        await store.grant_user_permission("acme", "alice", "posts/1", "read")

        assert (await store.delete_tenant("acme")).data is True

        assert (await store.get_tenant("acme")).data is None
        assert (await store.list_users("acme")).data == []
        assert (await store.list_roles("acme")).data == []
        assert (await store.list_user_permissions("acme", "alice")).data == []
        assert (await store.list_properties("acme", OwnerRef.tenant("acme"))).data == []
        assert [u.id for u in (await store.list_users("globex")).data] == ["alice"]

    @pytest.mark.asyncio
    async def test_concurrent_grants_do_not_duplicate(self, store):
        """Test concurrent grants store one row."""
        await asyncio.gather(*[
            store.grant_user_permission("acme", "alice", "posts/1", "read") for _ in range(10)
        ])

        assert len((await store.list_user_permissions("acme", "alice")).data) == 1

    @pytest.mark.asyncio
    async def test_permissions_by_resource(self, store):
        """Test listing grants for one resource."""
        await store.grant_user_permission("acme", "alice", "posts/1", "read")
        await store.grant_role_permission("acme", "editor", "posts/1", "edit")
        await store.grant_role_permission("acme", "editor", "posts/2", "edit")

        result = (await store.list_permissions_by_resource("acme", "posts/1")).data

        assert [(g.user_id, g.action) for g in result.user_permissions] == [("alice", "read")]
        assert [(g.role_id, g.action) for g in result.role_permissions] == [("editor", "edit")]

    @pytest.mark.asyncio
    async def test_create_with_rejected_property_leaves_nothing(self, store):
        """Test a rejected initial property leaves no tenant behind."""
        result = await store.create_tenant(
            Tenant(id="t1", name="T1"), [PropertyInput("ok", 1), PropertyInput("bad", float("nan"))]
        )

        assert isinstance(result.error, ValidationError)
        assert (await store.get_tenant("t1")).data is None
        assert (await store.list_properties("t1", OwnerRef.tenant("t1"))).data == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [float("nan"), float("-inf"), {"k": object()}])
    async def test_set_property_rejects_unsupported_value(self, store, value):
        """Test unsupported values fail without being stored."""
        result = await store.set_property("acme", OwnerRef.tenant("acme"), PropertyInput("x", value))

        assert isinstance(result.error, ValidationError)
        assert (await store.get_property("acme", OwnerRef.tenant("acme"), "x")).data is None

    @pytest.mark.asyncio
    async def test_set_property_on_missing_owner(self, store):
        """Test set_property on a missing owner is NotFound."""
        result = await store.set_property("acme", OwnerRef.user("ghost"), PropertyInput("team", "red"))

        assert isinstance(result.error, NotFoundError)
        assert (await store.list_properties("acme", OwnerRef.user("ghost"))).data == []
