"""Membership and access resolution"""

from typing import List, Optional

import structlog
from sqlalchemy.orm import Session

from orgpass.database.database import run_in_transaction
from orgpass.database.models import OrganizationMember, OrganizationRole, User, utcnow
from orgpass.errors import NotFound, PermissionDenied
from orgpass.results import Result, attempt
from orgpass.schemas import parse_input
from orgpass.schemas.members import MemberAccess, MemberInfo, MemberRemove, MemberRoleUpdate
from orgpass.services.authorization_service import AuthorizationService
from orgpass.templates import OrgPermission

logger = structlog.get_logger(__name__)

MEMBER_MANAGE_DENIED = "You do not have permission to manage members"


class MembershipService:
    """Service for reading and changing organization memberships"""

    def __init__(self, db: Session):
        self.db = db
        self.auth = AuthorizationService(db)

    def check_user_permissions(self, user_id: str, organization_id: str) -> Optional[MemberAccess]:
        """
        Look up the role a user holds in an organization.

        Returns:
            MemberAccess, or None if the user is not a member
        """
        return self.auth.get_member_access(organization_id, user_id)

    def count_members(self, organization_id: str) -> int:
        return self.db.query(OrganizationMember).filter(
            OrganizationMember.organization_id == organization_id
        ).count()

    def get_organization_members(self, organization_id: str) -> List[MemberInfo]:
        """Members of an organization joined with their user and role, oldest first"""
        rows = self.db.query(OrganizationMember, User, OrganizationRole).join(
            User, User.id == OrganizationMember.user_id
        ).join(
            OrganizationRole, OrganizationRole.id == OrganizationMember.role_id
        ).filter(
            OrganizationMember.organization_id == organization_id
        ).order_by(OrganizationMember.created_at.asc(), OrganizationMember.id.asc()).all()

        return [
            MemberInfo(
                id=member.id,
                organization_id=member.organization_id,
                user_id=user.id,
                email=user.email,
                name=user.name,
                role_id=role.id,
                role_name=role.name,
                hierarchy_level=role.hierarchy_level,
                is_owner=bool(member.is_owner),
                created_at=member.created_at,
            )
            for member, user, role in rows
        ]

    def get_members_with_permission_check(self, acting_user_id: str, organization_id: str) -> Result[List[MemberInfo]]:
        """List members; the acting user must belong to the organization."""

        def _list() -> List[MemberInfo]:
            self.auth.require_member(organization_id, acting_user_id)
            return self.get_organization_members(organization_id)

        return attempt(_list)

    def update_member_role_with_permission_check(
        self,
        acting_user_id: str,
        member_id: str,
        role_id: str,
        organization_id: str,
    ) -> Result[OrganizationMember]:
        """
        Move a member to another role of the same organization.

        The acting user needs member.manage (the owner always has it). Only
        the owner may change the owner's own membership.

        Returns:
            Result with the updated member, or ValidationError, Forbidden,
            PermissionDenied or NotFound
        """

        def _update(db: Session) -> OrganizationMember:
            data = parse_input(
                MemberRoleUpdate,
                member_id=member_id,
                role_id=role_id,
                organization_id=organization_id,
            )
            acting = self.auth.require_permission(
                data.organization_id, acting_user_id, OrgPermission.MEMBER_MANAGE, MEMBER_MANAGE_DENIED
            )

            role = db.query(OrganizationRole.id).filter(
                OrganizationRole.id == data.role_id,
                OrganizationRole.organization_id == data.organization_id,
            ).first()
            if not role:
                raise NotFound("Role not found", details={"role_id": data.role_id})

            target = db.query(OrganizationMember).filter(
                OrganizationMember.id == data.member_id,
                OrganizationMember.organization_id == data.organization_id,
            ).with_for_update().first()
            if not target:
                raise NotFound("Member not found", details={"member_id": data.member_id})
            if target.is_owner and not acting.is_owner:
                raise PermissionDenied("Only the owner can change the owner's role")

            updated = db.query(OrganizationMember).filter(
                OrganizationMember.id == data.member_id,
                OrganizationMember.organization_id == data.organization_id,
            ).update(
                {OrganizationMember.role_id: data.role_id, OrganizationMember.updated_at: utcnow()},
                synchronize_session="fetch",
            )
            if updated == 0:
                raise NotFound("Member not found", details={"member_id": data.member_id})

            return target

        result = attempt(lambda: run_in_transaction(self.db, _update))
        if result.ok:
            logger.info(
                "member_role_updated",
                member_id=member_id,
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        else:
            logger.info(
                "member_role_update_rejected",
                error=result.error.code,
                member_id=member_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result

    def remove_member_with_permission_check(
        self,
        acting_user_id: str,
        member_id: str,
        organization_id: str,
    ) -> Result[None]:
        """
        Remove a member from an organization.

        The owner membership cannot be removed. A delete that matches no row
        (already removed, or a member of another organization) is NotFound.
        """

        def _remove(db: Session) -> None:
            data = parse_input(MemberRemove, member_id=member_id, organization_id=organization_id)
            self.auth.require_permission(
                data.organization_id, acting_user_id, OrgPermission.MEMBER_MANAGE, MEMBER_MANAGE_DENIED
            )

            deleted = db.query(OrganizationMember).filter(
                OrganizationMember.id == data.member_id,
                OrganizationMember.organization_id == data.organization_id,
                OrganizationMember.is_owner.is_(False),
            ).delete(synchronize_session="fetch")

            if deleted == 0:
                owner = db.query(OrganizationMember.id).filter(
                    OrganizationMember.id == data.member_id,
                    OrganizationMember.organization_id == data.organization_id,
                    OrganizationMember.is_owner.is_(True),
                ).first()
                if owner:
                    raise PermissionDenied("The organization owner cannot be removed")
                raise NotFound("Member not found", details={"member_id": data.member_id})

        result = attempt(lambda: run_in_transaction(self.db, _remove))
        if result.ok:
            logger.info("member_removed", member_id=member_id, organization_id=organization_id, user_id=acting_user_id)
        else:
            logger.info(
                "member_remove_rejected",
                error=result.error.code,
                member_id=member_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result

    def has_higher_role_than(self, organization_id: str, acting_user_id: str, target_user_id: str) -> bool:
        """
        Whether the acting user outranks the target user.

        Advisory only, for deciding which actions to offer. The owner
        outranks everyone; otherwise a lower hierarchy level wins. Never use
        this as an authorization check.
        """
        acting = self.auth.get_member_access(organization_id, acting_user_id)
        target = self.auth.get_member_access(organization_id, target_user_id)
        if not acting or not target:
            return False
        if target.is_owner:
            return False
        if acting.is_owner:
            return True
        return acting.hierarchy_level < target.hierarchy_level
