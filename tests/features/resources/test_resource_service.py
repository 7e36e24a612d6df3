"""Tests for resource orchestration."""

import pytest

from permiso.core.exceptions import IsolationViolationError, NotFoundError, PreconditionFailedError, ValidationError
from permiso.features.permissions.services import permission_resolver, permission_service
from permiso.features.resources.services import resource_service


class TestResourceService:
    """Test resource lifecycle."""

    @pytest.mark.asyncio
    async def test_create_with_optional_name(self, acme):
        """Test creating a resource without a name."""
        result = await resource_service.create_resource(acme, "docs/readme")

        assert result.data.id == "docs/readme"
        assert result.data.name is None

    @pytest.mark.asyncio
    async def test_list_by_literal_prefix(self, acme):
        """Test listing resources by literal prefix."""
        for resource_id in ("docs/a", "docs/b", "docsx", "posts/1"):
            await resource_service.create_resource(acme, resource_id)

        result = await resource_service.list_resources(acme, id_prefix="docs/")

        assert [r.id for r in result.data] == ["docs/a", "docs/b"]

    @pytest.mark.asyncio
    async def test_update(self, acme):
        """Test updating a resource."""
        await resource_service.create_resource(acme, "docs/a", name="A")

        result = await resource_service.update_resource(acme, "docs/a", description="First doc")

        assert result.data.name == "A"
        assert result.data.description == "First doc"

    @pytest.mark.asyncio
    async def test_get_missing(self, acme):
        """Test getting a missing resource is NotFound."""
        result = await resource_service.get_resource(acme, "docs/ghost")

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_resource_properties(self, acme):
        """Test resource property operations."""
        await resource_service.create_resource(acme, "docs/a", properties=[{"name": "owner", "value": "alice"}])

        result = await resource_service.get_resource_properties(acme, "docs/a")

        assert [(p.name, p.value) for p in result.data] == [("owner", "alice")]


class TestResourceDeletion:
    """Test safety keys and grant cascades."""

    @pytest.mark.asyncio
    async def test_delete_removes_grants(self, acme):
        """Test deleting a resource removes its grants."""
        await resource_service.create_resource(acme, "posts/1")
        await permission_service.grant_role_permission(acme, "editor", "posts/1", "edit")

        result = await resource_service.delete_resource(acme, "posts/1", "posts/1")

        assert result.data is True
        assert (await permission_resolver.has_permission(acme, "alice", "posts/1", "edit")).data is False

    @pytest.mark.asyncio
    async def test_delete_wrong_safety_key(self, acme):
        """Test a wrong safety key deletes nothing."""
        await resource_service.create_resource(acme, "posts/1")

        result = await resource_service.delete_resource(acme, "posts/1", "posts/2")

        assert isinstance(result.error, PreconditionFailedError)
        assert (await resource_service.get_resource(acme, "posts/1")).success

    @pytest.mark.asyncio
    async def test_delete_missing(self, acme):
        """Test deleting a missing resource is NotFound."""
        result = await resource_service.delete_resource(acme, "posts/1", "posts/1")

        assert isinstance(result.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_prefix_delete_needs_matching_key(self, acme):
        """Test prefix delete needs a key equal to the prefix."""
        await resource_service.create_resource(acme, "docs/a")

        result = await resource_service.delete_resources_by_id_prefix(acme, "docs/", "docs")

        assert isinstance(result.error, PreconditionFailedError)
        assert len((await resource_service.list_resources(acme)).data) == 1

    @pytest.mark.asyncio
    async def test_prefix_delete(self, acme):
        """Test prefix delete reports the removed count."""
        for resource_id in ("docs/a", "docs/b", "posts/1"):
            await resource_service.create_resource(acme, resource_id)

        result = await resource_service.delete_resources_by_id_prefix(acme, "docs/", "docs/")

        assert result.data == 2

    @pytest.mark.asyncio
    async def test_prefix_delete_rejects_empty_prefix(self, acme):
        """Test prefix delete rejects an empty prefix."""
        await resource_service.create_resource(acme, "docs/a")

        result = await resource_service.delete_resources_by_id_prefix(acme, "", "")

        assert isinstance(result.error, ValidationError)
        assert len((await resource_service.list_resources(acme)).data) == 1

    @pytest.mark.asyncio
    async def test_root_rejected(self, root_ctx):
        """Test ROOT context is rejected."""
        result = await resource_service.delete_resources_by_id_prefix(root_ctx, "docs/", "docs/")

        assert isinstance(result.error, IsolationViolationError)
