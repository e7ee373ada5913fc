"""End-to-end organization lifecycle across the engines."""

import pytest

from orgpass.database.models import OrganizationRole, OrganizationRolePermission
from orgpass.results import AcceptOutcome, InviteEligibility
from orgpass.services.authorization_service import AuthorizationService
from orgpass.services.billing_service import OrganizationBillingService
from orgpass.services.invitation_service import InvitationService
from orgpass.services.membership_service import MembershipService
from orgpass.services.organization_service import OrganizationService
from orgpass.services.role_permission_service import RolePermissionService
from orgpass.services.role_service import RoleService
from orgpass.templates import OrgPermission


def _assert_organization_invariants(db, organization_id):
    assert db.query(OrganizationRole).filter(OrganizationRole.organization_id == organization_id).count() >= 1
    assert db.query(OrganizationRolePermission).filter(
        OrganizationRolePermission.organization_id == organization_id,
        OrganizationRolePermission.permission == OrgPermission.ROLE_MANAGE.value,
    ).count() >= 1


@pytest.mark.integration
class TestOrganizationFlow:
    @pytest.mark.asyncio
    async def test_invite_join_promote_and_restructure(
        self, db, email_provider, billing_gateway, organization, owner, roles, make_user
    ):
        """Invite a user, accept, promote, restructure roles and bill per seat."""
        invitations = InvitationService(db, email_provider=email_provider)
        members = MembershipService(db)
        role_service = RoleService(db)
        permissions = RolePermissionService(db)
        billing = OrganizationBillingService(db, gateway=billing_gateway)

        jane = make_user(email="jane@example.com", name="Jane")
        assert invitations.check_if_can_invite(jane.email, organization.id) == InviteEligibility.ELIGIBLE

        sent = (await invitations.send_invitation(owner.id, "Jane@example.com", roles["contributor"].id, organization.id)).unwrap()
        assert sent.email_sent
        assert email_provider.get_latest_email("jane@example.com") is not None
        assert invitations.check_if_can_invite(jane.email, organization.id) == InviteEligibility.INVITATION_ALREADY_SENT
        pending = invitations.get_user_invitations(jane.email)
        assert [i.organization_id for i in pending] == [organization.id]

        accepted = invitations.accept_invitation(sent.invitation_id, jane.email).unwrap()
        assert accepted.outcome == AcceptOutcome.SUCCESS
        assert invitations.check_if_can_invite(jane.email, organization.id) == InviteEligibility.ALREADY_MEMBER
        assert members.check_user_permissions(jane.id, organization.id).role_name == "contributor"

        members.update_member_role_with_permission_check(
            owner.id, accepted.member_id, roles["editor"].id, organization.id
        ).unwrap()
        auth = AuthorizationService(db)
        assert auth.has_org_permission(organization.id, jane.id, OrgPermission.MEMBER_MANAGE)
        assert not auth.has_org_permission(organization.id, jane.id, OrgPermission.ROLE_MANAGE)

        # Jane may invite into the admin tier now that she holds member.manage
        bob_invite = (await invitations.send_invitation(jane.id, "bob@example.com", roles["editor"].id, organization.id)).unwrap()
        assert bob_invite.email_sent

        managers = role_service.create_role(organization.id, "managers", 1, owner.id).unwrap()
        permissions.update_role_permissions(
            organization.id,
            managers.id,
            [OrgPermission.ROLE_MANAGE, OrgPermission.MEMBER_MANAGE],
            owner.id,
        ).unwrap()
        _assert_organization_invariants(db, organization.id)

        editor_id = roles["editor"].id
        role_service.delete_role(organization.id, editor_id, owner.id).unwrap()
        _assert_organization_invariants(db, organization.id)

        jane_access = members.check_user_permissions(jane.id, organization.id)
        assert jane_access.role_id == managers.id
        db.expire_all()
        assert invitations.get_invitation_by_id(bob_invite.invitation_id).role_id == managers.id

        listed = OrganizationService(db).get_organization_roles(organization.id)
        assert [r.name for r in listed] == ["contributor", "managers", "owner"]

        checkout = billing.prepare_checkout_session({
            "return_url": "https://app.example.com/billing",
            "price": {"id": "price_team", "line_items": [{"id": "seat", "type": "per_seat"}]},
            "attached_entity_id": organization.id,
        }).unwrap()
        assert checkout.variant_quantities[0].quantity == 2

        customer_id = (await billing.get_customer_id(organization.id, jane.id)).unwrap()
        assert billing_gateway.customers[customer_id].metadata == {"organizationId": organization.id}

        members.remove_member_with_permission_check(owner.id, accepted.member_id, organization.id).unwrap()
        assert members.count_members(organization.id) == 1
        _assert_organization_invariants(db, organization.id)
