"""Authorization primitives backed by the organization tables"""

from typing import Optional, Set

from sqlalchemy import func
from sqlalchemy.orm import Session

from orgpass.database.models import OrganizationMember, OrganizationRole, OrganizationRolePermission
from orgpass.errors import Forbidden, PermissionDenied
from orgpass.schemas.members import MemberAccess
from orgpass.templates import OrgPermission


class AuthorizationService:
    """Answers "may this user do X in this organization" questions."""

    def __init__(self, db: Session):
        self.db = db

    def get_membership(self, organization_id: str, user_id: str) -> Optional[OrganizationMember]:
        return self.db.query(OrganizationMember).filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        ).first()

    def get_member_access(self, organization_id: str, user_id: str) -> Optional[MemberAccess]:
        """
        Resolve the effective role of a user in an organization.

        Returns:
            MemberAccess, or None if the user is not a member
        """
        row = self.db.query(
            OrganizationMember.role_id,
            OrganizationMember.is_owner,
            OrganizationRole.name,
            OrganizationRole.hierarchy_level,
        ).join(
            OrganizationRole, OrganizationRole.id == OrganizationMember.role_id
        ).filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        ).first()

        if not row:
            return None

        return MemberAccess(
            role_id=row.role_id,
            role_name=row.name,
            hierarchy_level=row.hierarchy_level,
            is_owner=bool(row.is_owner),
        )

    def get_role_permission_set(self, role_id: str) -> Set[OrgPermission]:
        rows = self.db.query(OrganizationRolePermission.permission).filter(
            OrganizationRolePermission.role_id == role_id
        ).all()
        return {OrgPermission.parse(r.permission) for r in rows}

    def has_org_permission(self, organization_id: str, user_id: str, permission: OrgPermission) -> bool:
        """
        Check whether a user holds a permission in an organization.

        The owner holds every permission. Other members hold the permissions
        of their role.
        """
        membership = self.get_membership(organization_id, user_id)
        if not membership:
            return False
        if membership.is_owner:
            return True

        return self.db.query(OrganizationRolePermission.id).filter(
            OrganizationRolePermission.role_id == membership.role_id,
            OrganizationRolePermission.organization_id == organization_id,
            OrganizationRolePermission.permission == OrgPermission.parse(permission).value,
        ).first() is not None

    def require_permission(
        self,
        organization_id: str,
        user_id: str,
        permission: OrgPermission,
        message: Optional[str] = None,
    ) -> OrganizationMember:
        """
        Gate an operation on a permission.

        Raises:
            Forbidden: User is not a member of the organization
            PermissionDenied: User is a member without the permission
        """
        membership = self.get_membership(organization_id, user_id)
        if not membership:
            raise Forbidden(
                "You are not a member of this organization",
                details={"organization_id": organization_id},
            )
        if not self.has_org_permission(organization_id, user_id, permission):
            raise PermissionDenied(
                message or f"You do not have the {OrgPermission.parse(permission).value} permission",
                details={"organization_id": organization_id, "permission": OrgPermission.parse(permission).value},
            )
        return membership

    def require_member(self, organization_id: str, user_id: str) -> OrganizationMember:
        """Raises Forbidden unless the user belongs to the organization."""
        membership = self.get_membership(organization_id, user_id)
        if not membership:
            raise Forbidden(
                "You are not a member of this organization",
                details={"organization_id": organization_id},
            )
        return membership

    def count_role_manage_holders(self, organization_id: str, lock: bool = False) -> int:
        """
        Count the distinct roles of an organization holding role.manage.

        With ``lock`` the matching permission rows are selected FOR UPDATE so
        the count stays valid until the surrounding transaction ends.
        """
        query = self.db.query(OrganizationRolePermission.role_id).filter(
            OrganizationRolePermission.organization_id == organization_id,
            OrganizationRolePermission.permission == OrgPermission.ROLE_MANAGE.value,
        )
        if lock:
            return len({row.role_id for row in query.with_for_update().all()})
        return query.with_entities(
            func.count(func.distinct(OrganizationRolePermission.role_id))
        ).scalar() or 0

    def has_multiple_role_manage_holders(self, organization_id: str, lock: bool = False) -> bool:
        return self.count_role_manage_holders(organization_id, lock=lock) > 1
