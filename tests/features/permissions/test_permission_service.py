"""Tests for grant mutations and listings."""

import pytest

from permiso.core.exceptions import IsolationViolationError, NotFoundError, ValidationError
from permiso.features.permissions.services import permission_service


class TestGrants:
    """Test grant and revoke semantics."""

    @pytest.mark.asyncio
    async def test_grant_is_idempotent(self, acme):
        """Test granting twice keeps one grant."""
        first = await permission_service.grant_user_permission(acme, "alice", "posts/1", "edit")
        second = await permission_service.grant_user_permission(acme, "alice", "posts/1", "edit")

        assert first.data == second.data
        listed = await permission_service.get_user_permissions(acme, "alice")
        assert len(listed.data) == 1

    @pytest.mark.asyncio
    async def test_grant_does_not_need_registered_resource(self, acme):
        """Test grants may name an unregistered resource."""
        result = await permission_service.grant_role_permission(acme, "editor", "not/registered", "read")

        assert result.success

    @pytest.mark.asyncio
    async def test_grant_to_unknown_subject(self, acme):
        """Test granting to an unknown user or role is NotFound."""
        user = await permission_service.grant_user_permission(acme, "ghost", "posts/1", "edit")
        role = await permission_service.grant_role_permission(acme, "ghost", "posts/1", "edit")

        assert isinstance(user.error, NotFoundError)
        assert isinstance(role.error, NotFoundError)

    @pytest.mark.asyncio
    async def test_revoke_reports_removal(self, acme):
        """Test revoke reports whether a grant was removed."""
        await permission_service.grant_role_permission(acme, "editor", "posts/1", "edit")

        assert (await permission_service.revoke_role_permission(acme, "editor", "posts/1", "edit")).data is True
        assert (await permission_service.revoke_role_permission(acme, "editor", "posts/1", "edit")).data is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["user_id", "resource_id", "action"])
    async def test_empty_fields_rejected(self, acme, field):
        """Test empty grant fields are rejected."""
        args = {"user_id": "alice", "resource_id": "posts/1", "action": "edit", field: ""}

        result = await permission_service.grant_user_permission(acme, **args)

        assert isinstance(result.error, ValidationError)

    @pytest.mark.asyncio
    async def test_root_cannot_grant(self, acme, root_ctx):
        """Test ROOT context cannot grant."""
        result = await permission_service.grant_user_permission(root_ctx, "alice", "posts/1", "edit")

        assert isinstance(result.error, IsolationViolationError)


class TestGrantListings:
    """Test listing grants by subject and by resource."""

    @pytest.mark.asyncio
    async def test_user_permissions_are_direct_only(self, acme):
        """Test user grant listing excludes inherited grants."""
        await permission_service.grant_role_permission(acme, "editor", "posts/1", "edit")
        await permission_service.grant_user_permission(acme, "alice", "posts/2", "read")

        result = await permission_service.get_user_permissions(acme, "alice")

        assert [(g.resource_id, g.action) for g in result.data] == [("posts/2", "read")]

    @pytest.mark.asyncio
    async def test_role_permissions_filtered(self, acme):
        """Test role grant listing filters."""
        await permission_service.grant_role_permission(acme, "editor", "posts/1", "edit")
        await permission_service.grant_role_permission(acme, "editor", "posts/2", "edit")

        result = await permission_service.get_role_permissions(acme, "editor", resource_id="posts/2")

        assert [g.resource_id for g in result.data] == ["posts/2"]

    @pytest.mark.asyncio
    async def test_permissions_by_resource(self, acme):
        """Test grants for a resource from both sources."""
        await permission_service.grant_user_permission(acme, "alice", "posts/1", "read")
        await permission_service.grant_role_permission(acme, "editor", "posts/1", "edit")
        await permission_service.grant_role_permission(acme, "editor", "posts/2", "edit")

        result = await permission_service.get_permissions_by_resource(acme, "posts/1")

        assert result.data.resource_id == "posts/1"
        assert [g.user_id for g in result.data.user_permissions] == ["alice"]
        assert [(g.role_id, g.action) for g in result.data.role_permissions] == [("editor", "edit")]
