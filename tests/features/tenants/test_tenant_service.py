"""Tests for tenant orchestration."""

import pytest

from permiso.core.exceptions import (
    ConflictError,
    IsolationViolationError,
    NotFoundError,
    PreconditionFailedError,
    ValidationError,
)
from permiso.core.shared import RequestContext
from permiso.features.permissions.services import permission_resolver, permission_service
from permiso.features.resources.services import resource_service
from permiso.features.tenants.services import tenant_service
from permiso.features.users.services import user_service


class TestTenantLifecycle:
    """Test tenant create, read, update and list."""

    @pytest.mark.asyncio
    async def test_create_with_properties(self, root_ctx):
        """Test creating a tenant with properties."""
        result = await tenant_service.create_tenant(
            root_ctx,
            "acme",
            "Acme Corp",
            properties=[
                {"name": "plan", "value": "pro"},
                {"name": "billing_token", "value": "tok_123", "hidden": True},
            ],
        )

        tenant = result.unwrap()
        assert tenant.id == "acme"
        assert [p.name for p in tenant.properties] == ["plan"]

    @pytest.mark.asyncio
    async def test_duplicate_tenant_conflicts(self, acme, root_ctx):
        """Test creating a duplicate tenant conflicts."""
        result = await tenant_service.create_tenant(root_ctx, "acme", "Again")

        assert isinstance(result.error, ConflictError)

    @pytest.mark.asyncio
    async def test_duplicate_initial_property_names_rejected(self, root_ctx):
        """Test duplicate initial property names are rejected."""
        result = await tenant_service.create_tenant(
            root_ctx, "acme", "Acme", properties=[{"name": "plan"}, {"name": "plan"}]
        )

        assert isinstance(result.error, ValidationError)
        assert (await tenant_service.list_tenants(root_ctx)).data == []

    @pytest.mark.asyncio
    async def test_create_and_list_need_root(self, acme):
        """Test create and list need ROOT context."""
        created = await tenant_service.create_tenant(acme, "other", "Other")
        listed = await tenant_service.list_tenants(acme)

        assert isinstance(created.error, IsolationViolationError)
        assert isinstance(listed.error, IsolationViolationError)

    @pytest.mark.asyncio
    async def test_tenant_context_reads_own_tenant_only(self, acme, globex):
        """Test a tenant context reads only its own tenant."""
        own = await tenant_service.get_tenant(acme, "acme")
        other = await tenant_service.get_tenant(acme, "globex")

        assert own.data.name == "Acme Corp"
        assert isinstance(other.error, IsolationViolationError)

    @pytest.mark.asyncio
    async def test_get_missing_tenant(self, root_ctx):
        """Test getting a missing tenant is NotFound."""
        result = await tenant_service.get_tenant(root_ctx, "ghost")

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_update_keeps_unset_fields(self, root_ctx):
        """Test update leaves unset fields alone."""
        await tenant_service.create_tenant(root_ctx, "acme", "Acme", description="Widgets")

        result = await tenant_service.update_tenant(root_ctx, "acme", name="Acme Corp")

        assert result.data.name == "Acme Corp"
        assert result.data.description == "Widgets"

    @pytest.mark.asyncio
    async def test_list_filters_by_name(self, acme, globex, root_ctx):
        """Test listing tenants by name."""
        result = await tenant_service.list_tenants(root_ctx, name="Globex")

        assert [t.id for t in result.data] == ["globex"]

    @pytest.mark.asyncio
    async def test_empty_id_rejected(self, root_ctx):
        """Test an empty tenant id is rejected."""
        result = await tenant_service.create_tenant(root_ctx, "", "Nameless")

        assert isinstance(result.error, ValidationError)


class TestTenantDeletion:
    """Test the safety key and cascading delete."""

    @pytest.mark.asyncio
    async def test_wrong_safety_key_changes_nothing(self, acme, root_ctx):
        """Test a wrong safety key deletes nothing."""
        result = await tenant_service.delete_tenant(root_ctx, "acme", "acme-typo")

        assert isinstance(result.error, PreconditionFailedError)
        assert (await tenant_service.get_tenant(root_ctx, "acme")).success
        assert (await user_service.get_user(acme, "alice")).success

    @pytest.mark.asyncio
    async def test_delete_cascades(self, acme, globex, root_ctx):
        """Test deleting a tenant removes everything in it."""
        await resource_service.create_resource(acme, "posts/42")
        await permission_service.grant_user_permission(acme, "alice", "posts/42", "edit")

        result = await tenant_service.delete_tenant(root_ctx, "acme", "acme")

        assert result.data is True
        assert isinstance((await user_service.get_user(acme, "alice")).error, NotFoundError)
        assert (await permission_resolver.get_effective_permissions(acme, "alice")).data == []
        assert (await permission_resolver.has_permission(globex, "alice", "posts/42", "edit")).data is True

    @pytest.mark.asyncio
    async def test_recreated_tenant_starts_empty(self, acme, root_ctx):
        """Test a recreated tenant starts empty."""
        await tenant_service.delete_tenant(root_ctx, "acme", "acme")
        await tenant_service.create_tenant(root_ctx, "acme", "Acme Again")

        assert (await user_service.list_users(acme)).data == []

    @pytest.mark.asyncio
    async def test_delete_missing_tenant(self, root_ctx):
        """Test deleting a missing tenant is NotFound."""
        result = await tenant_service.delete_tenant(root_ctx, "ghost", "ghost")

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_tenant_cannot_delete_another(self, acme, globex):
        """Test a tenant cannot delete another tenant."""
        result = await tenant_service.delete_tenant(acme, "globex", "globex")

        assert isinstance(result.error, IsolationViolationError)


class TestTenantProperties:
    """Test tenant property bag and field resolution."""

    @pytest.mark.asyncio
    async def test_hidden_properties_need_opt_in(self, acme, root_ctx):
        """Test hidden properties need include_hidden."""
        await tenant_service.set_tenant_property(root_ctx, "acme", "secret", "s3cr3t", hidden=True)

        default = await tenant_service.get_tenant_property(root_ctx, "acme", "secret")
        explicit = await tenant_service.get_tenant_property(root_ctx, "acme", "secret", include_hidden=True)
        listed = await tenant_service.get_tenant_properties(root_ctx, "acme")
        tenant = await tenant_service.get_tenant(root_ctx, "acme", include_hidden=True)

        assert default.data is None
        assert explicit.data.value == "s3cr3t"
        assert listed.data == []
        assert [p.name for p in tenant.data.properties] == ["secret"]

    @pytest.mark.asyncio
    async def test_set_property_on_missing_tenant(self, root_ctx):
        """Test setting a property on a missing tenant is NotFound."""
        result = await tenant_service.set_tenant_property(root_ctx, "ghost", "plan", "pro")

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_delete_property_reports_removal(self, acme):
        """Test property delete reports whether it removed one."""
        await tenant_service.set_tenant_property(acme, "acme", "plan", "pro")

        assert (await tenant_service.delete_tenant_property(acme, "acme", "plan")).data is True
        assert (await tenant_service.delete_tenant_property(acme, "acme", "plan")).data is False

    @pytest.mark.asyncio
    async def test_unsupported_value_rejected(self, acme):
        """Test an unsupported property value is rejected."""
        result = await tenant_service.set_tenant_property(acme, "acme", "ratio", float("nan"))

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_root_resolves_tenant_members(self, acme, root_ctx):
        """Test ROOT resolves a tenant's users, roles and resources."""
        users = await tenant_service.get_tenant_users(root_ctx, "acme")
        roles = await tenant_service.get_tenant_roles(root_ctx, "acme")
        resources = await tenant_service.get_tenant_resources(root_ctx, "acme")

        assert [u.id for u in users.data] == ["alice"]
        assert [r.id for r in roles.data] == ["editor"]
        assert resources.data == []

    @pytest.mark.asyncio
    async def test_member_resolution_for_missing_tenant(self, root_ctx):
        """Test member resolution for a missing tenant is NotFound."""
        result = await tenant_service.get_tenant_users(root_ctx, "ghost")

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_member_resolution_across_tenants_rejected(self, acme, globex, repos):
        """Test member resolution across tenants is rejected."""
        ctx = RequestContext.for_tenant(repos, "globex")

        result = await tenant_service.get_tenant_users(ctx, "acme")

        assert isinstance(result.error, IsolationViolationError)
