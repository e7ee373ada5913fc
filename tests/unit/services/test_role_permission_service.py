"""Unit tests for RolePermissionService."""

import pytest

from orgpass.errors import Forbidden, LastRoleManageHolderError, NotFound, PermissionDenied, ValidationError
from orgpass.services.authorization_service import AuthorizationService
from orgpass.services.role_permission_service import RolePermissionService
from orgpass.services.role_service import RoleService
from orgpass.templates import OrgPermission


class TestRolePermissionService:
    """Tests for RolePermissionService."""

    @pytest.fixture
    def editor_user(self, make_user, add_member, organization, roles):
        user = make_user(email="editor@example.com")
        add_member(organization.id, user, roles["editor"].id)
        return user

    def test_default_permissions(self, db, roles):
        """Seeded roles carry their default permissions in catalog order."""
        service = RolePermissionService(db)

        assert service.get_role_permissions(roles["owner"].id) == list(OrgPermission)
        assert service.get_role_permissions(roles["editor"].id) == [
            OrgPermission.MEMBER_MANAGE,
            OrgPermission.INVITATION_MANAGE,
            OrgPermission.SETTING_MANAGE,
            OrgPermission.MEDIA_MANAGE,
        ]
        assert service.get_role_permissions(roles["contributor"].id) == [OrgPermission.MEDIA_MANAGE]

    def test_update_then_read_yields_same_set(self, db, organization, owner):
        """Writing a permission set and reading it back gives exactly that set."""
        role = RoleService(db).create_role(organization.id, "reviewer", 3, owner.id).unwrap()
        service = RolePermissionService(db)

        result = service.update_role_permissions(
            organization.id,
            role.id,
            [OrgPermission.MEDIA_MANAGE, OrgPermission.SETTING_MANAGE],
            owner.id,
        )

        assert result.ok
        assert result.value == [OrgPermission.SETTING_MANAGE, OrgPermission.MEDIA_MANAGE]
        assert service.get_role_permissions(role.id) == [OrgPermission.SETTING_MANAGE, OrgPermission.MEDIA_MANAGE]

    def test_update_applies_diff(self, db, organization, owner, roles):
        """Permissions missing from the new set are revoked, new ones granted."""
        service = RolePermissionService(db)
        editor_id = roles["editor"].id

        service.update_role_permissions(
            organization.id,
            editor_id,
            [OrgPermission.MEMBER_MANAGE, OrgPermission.ORGANIZATION_MANAGE],
            owner.id,
        ).unwrap()

        assert service.get_role_permissions(editor_id) == [
            OrgPermission.ORGANIZATION_MANAGE,
            OrgPermission.MEMBER_MANAGE,
        ]
        assert service.role_has_permission(editor_id, OrgPermission.ORGANIZATION_MANAGE)
        assert not service.role_has_permission(editor_id, OrgPermission.MEDIA_MANAGE)

    def test_update_accepts_permission_strings(self, db, organization, owner, roles):
        service = RolePermissionService(db)

        result = service.update_role_permissions(organization.id, roles["contributor"].id, ["setting.manage"], owner.id)

        assert result.value == [OrgPermission.SETTING_MANAGE]

    def test_update_to_empty_set(self, db, organization, owner, roles):
        service = RolePermissionService(db)

        result = service.update_role_permissions(organization.id, roles["contributor"].id, [], owner.id)

        assert result.ok
        assert service.get_role_permissions(roles["contributor"].id) == []

    def test_update_rejects_unknown_permission(self, db, organization, owner, roles):
        """Only catalog permissions can be granted."""
        service = RolePermissionService(db)

        result = service.update_role_permissions(organization.id, roles["contributor"].id, ["billing.manage"], owner.id)

        assert isinstance(result.error, ValidationError)
        assert service.get_role_permissions(roles["contributor"].id) == [OrgPermission.MEDIA_MANAGE]

    def test_removing_last_role_manage_fails(self, db, organization, owner, roles):
        """The only role holding role.manage cannot lose it."""
        service = RolePermissionService(db)
        owner_role_id = roles["owner"].id
        without_role_manage = [p for p in OrgPermission if p != OrgPermission.ROLE_MANAGE]

        result = service.update_role_permissions(organization.id, owner_role_id, without_role_manage, owner.id)

        assert isinstance(result.error, LastRoleManageHolderError)
        assert service.get_role_permissions(owner_role_id) == list(OrgPermission)
        assert AuthorizationService(db).count_role_manage_holders(organization.id) == 1

    def test_removing_role_manage_with_another_holder(self, db, organization, owner, roles):
        """role.manage can move once another role holds it."""
        service = RolePermissionService(db)
        service.update_role_permissions(
            organization.id,
            roles["editor"].id,
            [OrgPermission.ROLE_MANAGE, OrgPermission.MEMBER_MANAGE],
            owner.id,
        ).unwrap()

        result = service.update_role_permissions(organization.id, roles["owner"].id, [OrgPermission.MEDIA_MANAGE], owner.id)

        assert result.ok
        assert AuthorizationService(db).count_role_manage_holders(organization.id) == 1
        assert service.role_has_permission(roles["editor"].id, OrgPermission.ROLE_MANAGE)

    def test_update_requires_role_manage(self, db, organization, roles, editor_user):
        """Editors manage members but not roles."""
        service = RolePermissionService(db)

        result = service.update_role_permissions(
            organization.id, roles["contributor"].id, [OrgPermission.ROLE_MANAGE], editor_user.id
        )

        assert isinstance(result.error, PermissionDenied)
        assert service.get_role_permissions(roles["contributor"].id) == [OrgPermission.MEDIA_MANAGE]

    def test_update_rejects_non_member(self, db, organization, roles, make_user):
        result = RolePermissionService(db).update_role_permissions(
            organization.id, roles["contributor"].id, [], make_user().id
        )

        assert isinstance(result.error, Forbidden)

    def test_update_unknown_role(self, db, organization, owner):
        result = RolePermissionService(db).update_role_permissions(organization.id, "missing", [], owner.id)

        assert isinstance(result.error, NotFound)
