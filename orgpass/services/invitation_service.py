"""Invitation service for adding users to organizations via email invitations"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Tuple
import secrets

import structlog
from sqlalchemy import func
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from orgpass.clients.email import EmailProvider, get_email_provider
from orgpass.config import settings
from orgpass.database.database import lock_rows, run_in_transaction
from orgpass.database.models import (
    Organization,
    OrganizationInvitation,
    OrganizationMember,
    OrganizationRole,
    User,
    generate_id,
    utcnow,
)
from orgpass.emails.invitation import build_invite_link, invitee_name, render_invite_user_email
from orgpass.errors import AlreadyMember, EmailDeliveryError, InvitationAlreadySent, NotFound, PermissionDenied
from orgpass.results import AcceptOutcome, InviteEligibility, Result, attempt
from orgpass.schemas import parse_input
from orgpass.schemas.invitations import (
    InvitationAccept,
    InvitationCreate,
    InvitationInfo,
    InvitationUpdate,
    UserInvitationInfo,
    normalize_email,
)
from orgpass.services.authorization_service import AuthorizationService
from orgpass.services.notification_service import NotificationService
from orgpass.templates import OrgPermission

logger = structlog.get_logger(__name__)

INVITATION_MANAGE_DENIED = "You do not have permission to manage invitations"
HIGH_PRIVILEGE_DENIED = "Insufficient permissions to invite users with this role"


def generate_invitation_token() -> str:
    """Generate a secure invitation token"""
    return secrets.token_urlsafe(settings.INVITATION_TOKEN_BYTES)


def is_admin_tier(hierarchy_level: int) -> bool:
    """
    Whether inviting into a role of this level needs an organization admin.

    Levels from ADMIN_TIER_LEVEL up are admin tier. With ADMIN_TIER_TOP_DOWN
    the tier is levels 0 through ADMIN_TIER_LEVEL instead.
    """
    if settings.ADMIN_TIER_TOP_DOWN:
        return hierarchy_level <= settings.ADMIN_TIER_LEVEL
    return hierarchy_level >= settings.ADMIN_TIER_LEVEL


@dataclass
class InvitationSendOutcome:
    """
    Result of sending (or re-sending) an invitation.

    The invitation row is committed before the email goes out, so a failed
    delivery shows up as ``email_sent=False`` with the error attached.
    """

    invitation_id: str
    organization_id: str
    email: str
    invite_token: str
    refreshed: bool
    email_sent: bool = False
    email_error: Optional[EmailDeliveryError] = None


@dataclass
class InvitationAcceptance:
    outcome: AcceptOutcome
    organization_id: Optional[str] = None
    member_id: Optional[str] = None

    @property
    def accepted(self) -> bool:
        return self.outcome == AcceptOutcome.SUCCESS


class InvitationService:
    """Service for managing organization invitations"""

    def __init__(self, db: Session, email_provider: Optional[EmailProvider] = None):
        self.db = db
        self.email_provider = email_provider or get_email_provider()
        self.auth = AuthorizationService(db)
        self.notifications = NotificationService(db)

    # Lookups

    def get_invitation_by_id(self, invitation_id: str) -> Optional[OrganizationInvitation]:
        return self.db.query(OrganizationInvitation).filter(
            OrganizationInvitation.id == invitation_id
        ).first()

    def get_invitation_by_token(self, invite_token: str) -> Optional[OrganizationInvitation]:
        return self.db.query(OrganizationInvitation).filter(
            OrganizationInvitation.invite_token == invite_token
        ).first()

    def is_organization_admin(self, user_id: str, organization_id: str) -> bool:
        """
        Whether a user administers an organization.

        The owner and members whose role holds member.manage are admins.
        """
        return self.auth.has_org_permission(organization_id, user_id, OrgPermission.MEMBER_MANAGE)

    def _require_high_privilege_clearance(self, organization_id: str, user_id: str, message: str) -> None:
        if not self.is_organization_admin(user_id, organization_id):
            raise PermissionDenied(message, details={"organization_id": organization_id})

    def _get_role(self, organization_id: str, role_id: str) -> OrganizationRole:
        role = self.db.query(OrganizationRole).filter(
            OrganizationRole.id == role_id,
            OrganizationRole.organization_id == organization_id,
        ).first()
        if not role:
            raise NotFound("Invalid role selected", details={"role_id": role_id})
        return role

    def _get_organization(self, organization_id: str) -> Organization:
        organization = self.db.query(Organization).filter(Organization.id == organization_id).first()
        if not organization:
            raise NotFound("Organization not found", details={"organization_id": organization_id})
        return organization

    def check_if_can_invite(self, email: str, organization_id: str) -> InviteEligibility:
        """
        Check whether an email can be invited to an organization.

        Any existing invitation row blocks, whether or not it has expired.

        Args:
            email: Email address (compared case-insensitively)
            organization_id: Organization to invite into

        Returns:
            ELIGIBLE, ALREADY_MEMBER or INVITATION_ALREADY_SENT
        """
        email = normalize_email(email)

        existing_member = self.db.query(OrganizationMember.id).join(
            User, User.id == OrganizationMember.user_id
        ).filter(
            OrganizationMember.organization_id == organization_id,
            func.lower(User.email) == email,
        ).first()
        if existing_member:
            return InviteEligibility.ALREADY_MEMBER

        existing_invitation = self.db.query(OrganizationInvitation.id).filter(
            OrganizationInvitation.organization_id == organization_id,
            OrganizationInvitation.email == email,
        ).first()
        if existing_invitation:
            return InviteEligibility.INVITATION_ALREADY_SENT

        return InviteEligibility.ELIGIBLE

    # Creation

    def _upsert_invitation(
        self,
        db: Session,
        organization_id: str,
        email: str,
        role_id: str,
        invited_by: Optional[str],
        expiry_days: int,
    ) -> Tuple[OrganizationInvitation, bool]:
        """
        Insert an invitation or refresh the existing one for (organization, email).

        A refresh sets the new role and inviter, issues a new token and
        restarts the expiry window.

        Returns:
            Tuple of (invitation, refreshed)
        """
        now = utcnow()
        values = {
            "role_id": role_id,
            "invite_token": generate_invitation_token(),
            "invited_by": invited_by,
            "updated_at": now,
            "expires_at": now + timedelta(days=expiry_days),
        }

        refreshed = db.query(OrganizationInvitation.id).filter(
            OrganizationInvitation.organization_id == organization_id,
            OrganizationInvitation.email == email,
        ).first() is not None

        dialect = db.get_bind().dialect.name
        if dialect in ("postgresql", "sqlite"):
            insert = pg_insert if dialect == "postgresql" else sqlite_insert
            stmt = insert(OrganizationInvitation).values(
                id=generate_id(),
                organization_id=organization_id,
                email=email,
                created_at=now,
                **values,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[OrganizationInvitation.organization_id, OrganizationInvitation.email],
                set_=values,
            )
            db.execute(stmt)
        else:
            existing = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.organization_id == organization_id,
                OrganizationInvitation.email == email,
            ).with_for_update().first()
            if existing:
                for key, value in values.items():
                    setattr(existing, key, value)
            else:
                db.add(OrganizationInvitation(organization_id=organization_id, email=email, created_at=now, **values))
            db.flush()

        invitation = db.query(OrganizationInvitation).filter(
            OrganizationInvitation.organization_id == organization_id,
            OrganizationInvitation.email == email,
        ).execution_options(populate_existing=True).one()
        return invitation, refreshed

    def create_invitation(
        self,
        email: str,
        role_id: str,
        organization_id: str,
        invited_by: Optional[str] = None,
        expiry_days: Optional[int] = None,
        replace_existing: bool = True,
    ) -> Result[OrganizationInvitation]:
        """
        Create an invitation, or refresh the pending one for the same email.

        No authorization gate: callers go through send_invitation, which
        checks permissions and eligibility first.

        Args:
            email: Invitee email, normalized to lowercase
            role_id: Role granted on acceptance
            organization_id: Organization to invite into
            invited_by: User sending the invitation
            expiry_days: Days until the invitation expires
            replace_existing: Refresh an existing invitation instead of failing

        Returns:
            Result with the stored invitation, or ValidationError, NotFound
            or InvitationAlreadySent
        """

        def _create(db: Session) -> OrganizationInvitation:
            data = parse_input(InvitationCreate, email=email, role_id=role_id, organization_id=organization_id)
            self._get_role(data.organization_id, data.role_id)
            if not replace_existing and self.check_if_can_invite(
                data.email, data.organization_id
            ) == InviteEligibility.INVITATION_ALREADY_SENT:
                raise InvitationAlreadySent(
                    "An invitation was already sent to this email",
                    details={"email": data.email, "organization_id": data.organization_id},
                )
            invitation, _ = self._upsert_invitation(
                db,
                data.organization_id,
                data.email,
                data.role_id,
                invited_by,
                expiry_days or settings.INVITATION_EXPIRY_DAYS,
            )
            return invitation

        return attempt(lambda: run_in_transaction(self.db, _create))

    async def send_invitation_email_request(
        self,
        email: str,
        invite_token: str,
        organization_name: str,
        invited_by_name: str = "",
    ) -> None:
        """
        Render and dispatch the invitation email.

        Raises:
            EmailDeliveryError: If the provider could not send the email
        """
        invite_link = build_invite_link(invite_token, email)
        rendered = render_invite_user_email(
            invite_link=invite_link,
            name=invitee_name(email),
            organization_name=organization_name,
            invited_by=invited_by_name,
        )
        await self.email_provider.send_email(
            to=email,
            from_email=settings.EMAIL_FROM,
            subject=rendered.subject,
            html=rendered.html,
        )

    async def _deliver(self, outcome: InvitationSendOutcome, organization_name: str, invited_by_name: str) -> None:
        try:
            await self.send_invitation_email_request(
                email=outcome.email,
                invite_token=outcome.invite_token,
                organization_name=organization_name,
                invited_by_name=invited_by_name,
            )
            outcome.email_sent = True
        except EmailDeliveryError as e:
            # Invitation row is already committed
            logger.error(
                "invitation_email_failed",
                invitation_id=outcome.invitation_id,
                organization_id=outcome.organization_id,
                email=outcome.email,
                error=e.message,
            )
            outcome.email_error = e

    async def send_invitation(
        self,
        acting_user_id: str,
        email: str,
        role_id: str,
        organization_id: str,
    ) -> Result[InvitationSendOutcome]:
        """
        Invite an email address into an organization.

        Steps:
            1. The role must belong to the organization
            2. The acting user needs invitation.manage; high-privilege roles
               additionally need an organization admin
            3. Existing members are rejected; an existing invitation is
               refreshed in place (new role, token and expiry)
            4. An existing account for the email gets an in-app notification
            5. After commit, the invitation email is sent. A delivery failure
               is reported on the outcome and does not undo the invitation.

        Returns:
            Result with the send outcome, or ValidationError, NotFound,
            Forbidden, PermissionDenied or AlreadyMember
        """
        context = {}

        def _send(db: Session) -> InvitationSendOutcome:
            data = parse_input(InvitationCreate, email=email, role_id=role_id, organization_id=organization_id)
            role = self._get_role(data.organization_id, data.role_id)
            self.auth.require_permission(
                data.organization_id, acting_user_id, OrgPermission.INVITATION_MANAGE, INVITATION_MANAGE_DENIED
            )
            if is_admin_tier(role.hierarchy_level):
                self._require_high_privilege_clearance(data.organization_id, acting_user_id, HIGH_PRIVILEGE_DENIED)

            if self.check_if_can_invite(data.email, data.organization_id) == InviteEligibility.ALREADY_MEMBER:
                raise AlreadyMember(
                    "User is already a member of this organization",
                    details={"email": data.email},
                )

            organization = self._get_organization(data.organization_id)
            invitation, refreshed = self._upsert_invitation(
                db,
                data.organization_id,
                data.email,
                data.role_id,
                acting_user_id,
                settings.INVITATION_EXPIRY_DAYS,
            )

            self.notifications.notify_email(
                data.email,
                title=f"You have been invited to join {organization.name} as {role.name}.",
                body="Accept or decline the invitation.",
                organization_id=data.organization_id,
            )

            inviter = db.query(User).filter(User.id == acting_user_id).first()
            context["organization_name"] = organization.name
            context["invited_by_name"] = inviter.display_name if inviter else ""

            return InvitationSendOutcome(
                invitation_id=invitation.id,
                organization_id=invitation.organization_id,
                email=invitation.email,
                invite_token=invitation.invite_token,
                refreshed=refreshed,
            )

        result = attempt(lambda: run_in_transaction(self.db, _send))
        if not result.ok:
            logger.info(
                "invitation_send_rejected",
                error=result.error.code,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
            return result

        outcome = result.value
        logger.info(
            "invitation_sent",
            invitation_id=outcome.invitation_id,
            organization_id=outcome.organization_id,
            user_id=acting_user_id,
            refreshed=outcome.refreshed,
        )
        await self._deliver(outcome, context["organization_name"], context["invited_by_name"])
        return result

    async def resend_invitation(
        self,
        acting_user_id: str,
        invitation_id: str,
        organization_id: str,
    ) -> Result[InvitationSendOutcome]:
        """
        Re-send an invitation with a new token and a fresh expiry window.

        Works for expired invitations as well.
        """
        context = {}

        def _resend(db: Session) -> InvitationSendOutcome:
            self.auth.require_permission(
                organization_id, acting_user_id, OrgPermission.INVITATION_MANAGE, INVITATION_MANAGE_DENIED
            )
            invitation = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.id == invitation_id,
                OrganizationInvitation.organization_id == organization_id,
            ).with_for_update().first()
            if not invitation:
                raise NotFound("Invitation not found", details={"invitation_id": invitation_id})

            role = self._get_role(organization_id, invitation.role_id)
            if is_admin_tier(role.hierarchy_level):
                self._require_high_privilege_clearance(organization_id, acting_user_id, HIGH_PRIVILEGE_DENIED)

            now = utcnow()
            invitation.invite_token = generate_invitation_token()
            invitation.expires_at = now + timedelta(days=settings.INVITATION_EXPIRY_DAYS)
            invitation.updated_at = now
            db.flush()

            organization = self._get_organization(organization_id)
            inviter = db.query(User).filter(User.id == acting_user_id).first()
            context["organization_name"] = organization.name
            context["invited_by_name"] = inviter.display_name if inviter else ""

            return InvitationSendOutcome(
                invitation_id=invitation.id,
                organization_id=invitation.organization_id,
                email=invitation.email,
                invite_token=invitation.invite_token,
                refreshed=True,
            )

        result = attempt(lambda: run_in_transaction(self.db, _resend))
        if not result.ok:
            logger.info(
                "invitation_resend_rejected",
                error=result.error.code,
                invitation_id=invitation_id,
                user_id=acting_user_id,
            )
            return result

        logger.info("invitation_resent", invitation_id=invitation_id, organization_id=organization_id)
        await self._deliver(result.value, context["organization_name"], context["invited_by_name"])
        return result

    # State transitions

    def accept_invitation(self, invitation_id: str, user_email: str) -> Result[InvitationAcceptance]:
        """
        Accept an invitation on behalf of the account owning ``user_email``.

        The invitation row is write-locked before anything is checked, so
        concurrent accepts of the same invitation produce one SUCCESS and
        NOT_FOUND for the rest.

        Returns:
            Result with the acceptance outcome (SUCCESS, NOT_FOUND, EXPIRED,
            WRONG_EMAIL or ALREADY_MEMBER), or ValidationError, or NotFound
            when no account exists for the email
        """

        def _accept(db: Session) -> InvitationAcceptance:
            data = parse_input(InvitationAccept, invitation_id=invitation_id, user_email=user_email)

            if not lock_rows(db, OrganizationInvitation, OrganizationInvitation.id == data.invitation_id):
                return InvitationAcceptance(AcceptOutcome.NOT_FOUND)

            invitation = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.id == data.invitation_id
            ).first()
            if not invitation:
                return InvitationAcceptance(AcceptOutcome.NOT_FOUND)

            organization_id = invitation.organization_id
            if invitation.is_expired():
                return InvitationAcceptance(AcceptOutcome.EXPIRED, organization_id)
            if invitation.email != data.user_email:
                return InvitationAcceptance(AcceptOutcome.WRONG_EMAIL, organization_id)

            user = db.query(User).filter(func.lower(User.email) == data.user_email).first()
            if not user:
                raise NotFound("No account exists for this email", details={"email": data.user_email})

            if self.auth.get_membership(organization_id, user.id):
                return InvitationAcceptance(AcceptOutcome.ALREADY_MEMBER, organization_id)

            member = OrganizationMember(
                organization_id=organization_id,
                user_id=user.id,
                role_id=invitation.role_id,
                is_owner=False,
            )
            db.add(member)

            if invitation.invited_by:
                self.notifications.notify(
                    invitation.invited_by,
                    title=f"{user.display_name} accepted your invitation",
                    body=f"{user.display_name} has joined your organization.",
                    organization_id=organization_id,
                    type="success",
                )

            db.delete(invitation)
            db.flush()
            return InvitationAcceptance(AcceptOutcome.SUCCESS, organization_id, member.id)

        result = attempt(lambda: run_in_transaction(self.db, _accept))
        if result.ok:
            logger.info(
                "invitation_accept_processed",
                invitation_id=invitation_id,
                outcome=result.value.outcome.value,
                organization_id=result.value.organization_id,
            )
        else:
            logger.info("invitation_accept_rejected", invitation_id=invitation_id, error=result.error.code)
        return result

    def decline_invitation(self, invitation_id: str, organization_id: str, user_email: str) -> Result[None]:
        """
        Decline an invitation addressed to ``user_email``.

        Deletes the row and notifies the inviter. A missing invitation is
        NotFound; an invitation for another email is PermissionDenied.
        """

        def _decline(db: Session) -> None:
            email = normalize_email(user_email)
            invitation = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.id == invitation_id,
                OrganizationInvitation.organization_id == organization_id,
            ).with_for_update().first()
            if not invitation:
                raise NotFound("Invitation not found", details={"invitation_id": invitation_id})
            if invitation.email != email:
                raise PermissionDenied("This invitation is addressed to another email")

            invited_user = db.query(User).filter(func.lower(User.email) == invitation.email).first()
            name = invited_user.display_name if invited_user else invitee_name(invitation.email)
            if invitation.invited_by:
                self.notifications.notify(
                    invitation.invited_by,
                    title=f"{name} declined your invitation",
                    body=f"{name} has rejected the invitation to join your organization.",
                    organization_id=organization_id,
                )

            db.delete(invitation)
            db.flush()

        result = attempt(lambda: run_in_transaction(self.db, _decline))
        if result.ok:
            logger.info("invitation_declined", invitation_id=invitation_id, organization_id=organization_id)
        else:
            logger.info("invitation_decline_rejected", invitation_id=invitation_id, error=result.error.code)
        return result

    def revoke_invitation(self, acting_user_id: str, invitation_id: str, organization_id: str) -> Result[None]:
        """
        Revoke an invitation.

        Deletes the row and notifies the invited user if they already have
        an account.
        """

        def _revoke(db: Session) -> None:
            self.auth.require_permission(
                organization_id, acting_user_id, OrgPermission.INVITATION_MANAGE, INVITATION_MANAGE_DENIED
            )
            invitation = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.id == invitation_id,
                OrganizationInvitation.organization_id == organization_id,
            ).with_for_update().first()
            if not invitation:
                raise NotFound("Invitation not found", details={"invitation_id": invitation_id})

            organization = self._get_organization(organization_id)
            self.notifications.notify_email(
                invitation.email,
                title=f"Your invitation to join {organization.name} has been revoked.",
                body=f"You can no longer join {organization.name}.",
                type="warning",
            )

            db.delete(invitation)
            db.flush()

        result = attempt(lambda: run_in_transaction(self.db, _revoke))
        if result.ok:
            logger.info(
                "invitation_revoked",
                invitation_id=invitation_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        else:
            logger.info(
                "invitation_revoke_rejected",
                invitation_id=invitation_id,
                error=result.error.code,
                user_id=acting_user_id,
            )
        return result

    def update_invitation(
        self,
        acting_user_id: str,
        invitation_id: str,
        organization_id: str,
        role_id: str,
    ) -> Result[OrganizationInvitation]:
        """
        Change the role an invitation grants.

        Moving an invitation into the admin tier from outside it requires an
        organization admin; otherwise invitation.manage is enough.
        """

        def _update(db: Session) -> OrganizationInvitation:
            data = parse_input(
                InvitationUpdate,
                invitation_id=invitation_id,
                organization_id=organization_id,
                role_id=role_id,
            )
            self.auth.require_permission(
                data.organization_id, acting_user_id, OrgPermission.INVITATION_MANAGE, INVITATION_MANAGE_DENIED
            )

            invitation = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.id == data.invitation_id,
                OrganizationInvitation.organization_id == data.organization_id,
            ).with_for_update().first()
            if not invitation:
                raise NotFound("Invitation not found", details={"invitation_id": data.invitation_id})

            current_role = self._get_role(data.organization_id, invitation.role_id)
            new_role = self._get_role(data.organization_id, data.role_id)

            if not is_admin_tier(current_role.hierarchy_level) and is_admin_tier(new_role.hierarchy_level):
                self._require_high_privilege_clearance(
                    data.organization_id,
                    acting_user_id,
                    "Insufficient permissions to assign high privilege roles",
                )

            invitation.role_id = new_role.id
            invitation.updated_at = utcnow()
            db.flush()
            return invitation

        result = attempt(lambda: run_in_transaction(self.db, _update))
        if result.ok:
            logger.info(
                "invitation_updated",
                invitation_id=invitation_id,
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        else:
            logger.info(
                "invitation_update_rejected",
                invitation_id=invitation_id,
                error=result.error.code,
                user_id=acting_user_id,
            )
        return result

    # Listings

    def list_organization_invitations(self, acting_user_id: str, organization_id: str) -> Result[List[InvitationInfo]]:
        """
        List the invitations of an organization, newest first.

        Expired rows are included and labelled ``expired``.
        """

        def _list() -> List[InvitationInfo]:
            self.auth.require_permission(
                organization_id, acting_user_id, OrgPermission.INVITATION_MANAGE, INVITATION_MANAGE_DENIED
            )
            rows = self.db.query(OrganizationInvitation, OrganizationRole).join(
                OrganizationRole, OrganizationRole.id == OrganizationInvitation.role_id
            ).filter(
                OrganizationInvitation.organization_id == organization_id
            ).order_by(OrganizationInvitation.created_at.desc(), OrganizationInvitation.id.desc()).all()

            now = utcnow()
            return [
                InvitationInfo(
                    id=invitation.id,
                    organization_id=invitation.organization_id,
                    email=invitation.email,
                    role_id=role.id,
                    role_name=role.name,
                    hierarchy_level=role.hierarchy_level,
                    invited_by=invitation.invited_by,
                    status="expired" if invitation.is_expired(now) else "pending",
                    created_at=invitation.created_at,
                    expires_at=invitation.expires_at,
                )
                for invitation, role in rows
            ]

        return attempt(_list)

    def get_user_invitations(self, email: str, include_expired: bool = False) -> List[UserInvitationInfo]:
        """Invitations addressed to an email across all organizations"""
        email = normalize_email(email)
        rows = self.db.query(OrganizationInvitation, OrganizationRole, Organization).join(
            OrganizationRole, OrganizationRole.id == OrganizationInvitation.role_id
        ).join(
            Organization, Organization.id == OrganizationInvitation.organization_id
        ).filter(
            OrganizationInvitation.email == email
        ).order_by(OrganizationInvitation.created_at.desc()).all()

        now = utcnow()
        invitations = []
        for invitation, role, organization in rows:
            expired = invitation.is_expired(now)
            if expired and not include_expired:
                continue
            invitations.append(UserInvitationInfo(
                id=invitation.id,
                organization_id=organization.id,
                organization_name=organization.name,
                organization_slug=organization.slug,
                email=invitation.email,
                role_id=role.id,
                role_name=role.name,
                hierarchy_level=role.hierarchy_level,
                invited_by=invitation.invited_by,
                invite_token=invitation.invite_token,
                status="expired" if expired else "pending",
                created_at=invitation.created_at,
                expires_at=invitation.expires_at,
            ))
        return invitations
