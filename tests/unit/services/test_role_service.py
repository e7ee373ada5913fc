"""Unit tests for RoleService."""

import uuid
from datetime import datetime

import pytest

from orgpass.database.models import OrganizationInvitation, OrganizationMember, OrganizationRole
from orgpass.errors import (
    DuplicateName,
    Forbidden,
    LastRoleError,
    LastRoleManageHolderError,
    NotFound,
    PermissionDenied,
    ValidationError,
)
from orgpass.services.invitation_service import InvitationService
from orgpass.services.organization_service import OrganizationService
from orgpass.services.role_permission_service import RolePermissionService
from orgpass.services.role_service import RoleService, select_replacement_role
from orgpass.templates import OrgPermission


def _role(level, created_at=None, role_id=None):
    return OrganizationRole(
        id=role_id or str(uuid.uuid4()),
        organization_id="org",
        name=f"role_{uuid.uuid4().hex[:6]}",
        hierarchy_level=level,
        created_at=created_at or datetime(2024, 1, 1),
    )


class TestSelectReplacementRole:
    """Tests for the replacement role choice."""

    def test_prefers_same_level(self):
        deleted = _role(2)
        same = _role(2)
        candidates = [_role(0), _role(1), same, _role(3), deleted]

        assert select_replacement_role(deleted, candidates) is same

    def test_same_level_tie_broken_by_creation_time(self):
        deleted = _role(2)
        older = _role(2, created_at=datetime(2023, 1, 1))
        newer = _role(2, created_at=datetime(2024, 6, 1))

        assert select_replacement_role(deleted, [newer, older, deleted]) is older

    def test_falls_back_to_closest_role_with_more_authority(self):
        deleted = _role(5)
        closest = _role(3)
        candidates = [_role(0), closest, _role(8), deleted]

        assert select_replacement_role(deleted, candidates) is closest

    def test_falls_back_to_closest_role_with_less_authority(self):
        deleted = _role(0)
        closest = _role(2)
        candidates = [_role(5), closest, deleted]

        assert select_replacement_role(deleted, candidates) is closest

    def test_returns_none_without_candidates(self):
        deleted = _role(2)

        assert select_replacement_role(deleted, [deleted]) is None


class TestRoleService:
    """Tests for RoleService."""

    @pytest.fixture
    def contributor_user(self, make_user, add_member, organization, roles):
        user = make_user(email="contributor@example.com")
        add_member(organization.id, user, roles["contributor"].id)
        return user

    def test_list_roles_returns_default_roles(self, db, organization):
        """New organizations start with the default roles, highest authority first."""
        service = RoleService(db)

        roles = service.list_roles(organization.id)

        assert [(r.name, r.hierarchy_level) for r in roles] == [
            ("owner", 0),
            ("editor", 2),
            ("contributor", 5),
        ]

    def test_create_role(self, db, organization, owner):
        """Created role is listed with zero permissions."""
        service = RoleService(db)

        result = service.create_role(organization.id, "reviewer", 3, owner.id)

        assert result.ok
        assert result.value.name == "reviewer"
        assert result.value.hierarchy_level == 3

        listed = OrganizationService(db).get_organization_roles(organization.id)
        reviewer = next(r for r in listed if r.name == "reviewer")
        assert reviewer.permissions == []

    def test_create_role_duplicate_name(self, db, organization, owner):
        """Role names are unique within an organization."""
        service = RoleService(db)

        result = service.create_role(organization.id, "editor", 4, owner.id)

        assert not result.ok
        assert isinstance(result.error, DuplicateName)
        assert service.count_roles(organization.id) == 3

    @pytest.mark.parametrize("name,level", [
        ("Reviewer", 3),
        ("9lives", 3),
        ("has space", 3),
        ("reviewer", 11),
        ("reviewer", -1),
    ])
    def test_create_role_rejects_invalid_input(self, db, organization, owner, name, level):
        """Names must be lowercase identifiers and levels within 0..10."""
        result = RoleService(db).create_role(organization.id, name, level, owner.id)

        assert not result.ok
        assert isinstance(result.error, ValidationError)

    def test_create_role_requires_role_manage(self, db, organization, contributor_user):
        """Members without role.manage cannot create roles."""
        result = RoleService(db).create_role(organization.id, "reviewer", 3, contributor_user.id)

        assert not result.ok
        assert isinstance(result.error, PermissionDenied)
        assert not isinstance(result.error, Forbidden)

    def test_create_role_rejects_non_member(self, db, organization, make_user):
        """Outsiders get Forbidden."""
        outsider = make_user()

        result = RoleService(db).create_role(organization.id, "reviewer", 3, outsider.id)

        assert isinstance(result.error, Forbidden)

    def test_update_role_partial(self, db, organization, owner, roles):
        """Only the provided fields change."""
        service = RoleService(db)

        result = service.update_role(organization.id, roles["contributor"].id, owner.id, hierarchy_level=6)

        assert result.ok
        assert result.value.name == "contributor"
        assert result.value.hierarchy_level == 6

    def test_update_role_rename_conflict(self, db, organization, owner, roles):
        """Renaming to another role's name is rejected."""
        result = RoleService(db).update_role(organization.id, roles["contributor"].id, owner.id, name="editor")

        assert isinstance(result.error, DuplicateName)

    def test_update_role_rename_to_same_name(self, db, organization, owner, roles):
        """Renaming a role to its current name is a no-op, not a conflict."""
        result = RoleService(db).update_role(organization.id, roles["editor"].id, owner.id, name="editor")

        assert result.ok

    def test_update_role_not_found(self, db, organization, owner):
        result = RoleService(db).update_role(organization.id, str(uuid.uuid4()), owner.id, name="ghost")

        assert isinstance(result.error, NotFound)

    def test_delete_role_reassigns_to_same_level(self, db, organization, owner, roles, make_user, add_member):
        """Members of a deleted role move to a role at the same level."""
        service = RoleService(db)
        reviewer = service.create_role(organization.id, "reviewer", 2, owner.id).unwrap()
        editor_id = roles["editor"].id
        member = add_member(organization.id, make_user(), editor_id)

        result = service.delete_role(organization.id, editor_id, owner.id)

        assert result.ok
        db.expire_all()
        assert db.get(OrganizationMember, member.id).role_id == reviewer.id
        assert service.get_role(organization.id, editor_id) is None

    def test_delete_role_reassigns_to_closest_role_above(self, db, organization, owner, roles, contributor_user):
        """Without a same-level role, the closest role with more authority wins."""
        service = RoleService(db)

        result = service.delete_role(organization.id, roles["contributor"].id, owner.id)

        assert result.ok
        access = OrganizationService(db).auth.get_member_access(organization.id, contributor_user.id)
        assert access.role_id == roles["editor"].id

    def test_delete_top_role_reassigns_members_to_level_two(self, db, organization, owner, roles, make_user, add_member):
        """Roles at [0, 2, 2, 5]: members of the level-0 role end up on a level-2 role."""
        service = RoleService(db)
        service.create_role(organization.id, "reviewer", 2, owner.id).unwrap()
        RolePermissionService(db).update_role_permissions(
            organization.id,
            roles["editor"].id,
            [OrgPermission.ROLE_MANAGE, OrgPermission.MEMBER_MANAGE],
            owner.id,
        ).unwrap()
        admin = make_user()
        add_member(organization.id, admin, roles["owner"].id)

        result = service.delete_role(organization.id, roles["owner"].id, owner.id)

        assert result.ok
        db.expire_all()
        members = db.query(OrganizationMember).filter(
            OrganizationMember.organization_id == organization.id,
            OrganizationMember.user_id.in_([owner.id, admin.id]),
        ).all()
        assert len(members) == 2
        assigned = {m.role_id for m in members}
        assert len(assigned) == 1
        replacement = service.get_role(organization.id, assigned.pop())
        assert replacement.hierarchy_level == 2

    def test_delete_role_repoints_invitations(self, db, organization, owner, roles, email_provider):
        """Pending invitations follow the replacement role."""
        invitation = InvitationService(db, email_provider=email_provider).create_invitation(
            "new@example.com", roles["contributor"].id, organization.id, invited_by=owner.id
        ).unwrap()

        result = RoleService(db).delete_role(organization.id, roles["contributor"].id, owner.id)

        assert result.ok
        db.expire_all()
        assert db.get(OrganizationInvitation, invitation.id).role_id == roles["editor"].id

    def test_delete_last_role_fails(self, db, organization, owner, roles):
        """The only role of an organization cannot be deleted."""
        service = RoleService(db)
        service.delete_role(organization.id, roles["contributor"].id, owner.id).unwrap()
        service.delete_role(organization.id, roles["editor"].id, owner.id).unwrap()

        result = service.delete_role(organization.id, roles["owner"].id, owner.id)

        assert isinstance(result.error, LastRoleError)
        assert service.count_roles(organization.id) == 1

    def test_delete_only_role_manage_holder_fails(self, db, organization, owner, roles):
        """Deleting the only role holding role.manage is refused."""
        service = RoleService(db)

        result = service.delete_role(organization.id, roles["owner"].id, owner.id)

        assert isinstance(result.error, LastRoleManageHolderError)
        assert service.count_roles(organization.id) == 3
        assert db.query(OrganizationMember).filter(
            OrganizationMember.user_id == owner.id
        ).one().role_id == roles["owner"].id

    def test_delete_role_removes_permissions(self, db, organization, owner, roles):
        """Permission rows go away with the role."""
        role_id = roles["editor"].id

        RoleService(db).delete_role(organization.id, role_id, owner.id).unwrap()

        assert RolePermissionService(db).get_role_permissions(role_id) == []

    def test_delete_role_of_other_organization(self, db, organization, owner, make_user):
        """A role id from another organization is NotFound."""
        other_owner = make_user()
        other = OrganizationService(db).create_organization("Other", "other-org", other_owner.id).unwrap()
        foreign_role = RoleService(db).get_role_by_name(other.id, "contributor")

        result = RoleService(db).delete_role(organization.id, foreign_role.id, owner.id)

        assert isinstance(result.error, NotFound)
        assert RoleService(db).count_roles(other.id) == 3

    def test_delete_role_requires_role_manage(self, db, organization, roles, contributor_user):
        result = RoleService(db).delete_role(organization.id, roles["editor"].id, contributor_user.id)

        assert isinstance(result.error, PermissionDenied)
        assert RoleService(db).count_roles(organization.id) == 3
