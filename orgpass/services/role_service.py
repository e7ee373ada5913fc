"""
Role Service.

Handles organization role CRUD. Deleting a role reassigns its members and
pending invitations to the closest remaining role.
"""

from typing import List, Optional, Sequence

import structlog
from sqlalchemy.orm import Session

from orgpass.database.database import lock_rows, run_in_transaction
from orgpass.database.models import (
    OrganizationInvitation,
    OrganizationMember,
    OrganizationRole,
    OrganizationRolePermission,
    utcnow,
)
from orgpass.errors import (
    DuplicateName,
    LastRoleError,
    LastRoleManageHolderError,
    NoReplacementRole,
    NotFound,
)
from orgpass.results import Result, attempt
from orgpass.schemas import parse_input
from orgpass.schemas.roles import RoleCreate, RoleUpdate
from orgpass.services.authorization_service import AuthorizationService
from orgpass.templates import OrgPermission

logger = structlog.get_logger(__name__)

ROLE_MANAGE_DENIED = "You do not have permission to manage roles"


def select_replacement_role(
    deleted: OrganizationRole,
    candidates: Sequence[OrganizationRole],
) -> Optional[OrganizationRole]:
    """
    Pick the role that inherits the members of a deleted role.

    Order of preference:
        1. a role at the same hierarchy level
        2. the closest role with more authority (largest level below)
        3. the closest role with less authority (smallest level above)

    Ties are broken by creation time, then id.

    Args:
        deleted: Role being deleted
        candidates: Remaining roles of the organization

    Returns:
        The replacement role, or None if there are no candidates
    """
    others = sorted(
        (r for r in candidates if r.id != deleted.id),
        key=lambda r: (r.hierarchy_level, r.created_at or utcnow(), r.id),
    )
    level = deleted.hierarchy_level

    same = [r for r in others if r.hierarchy_level == level]
    if same:
        return same[0]

    above = [r for r in others if r.hierarchy_level < level]
    if above:
        closest = max(r.hierarchy_level for r in above)
        return next(r for r in above if r.hierarchy_level == closest)

    below = [r for r in others if r.hierarchy_level > level]
    if below:
        return below[0]

    return None


class RoleService:
    """
    Service for managing organization roles.
    """

    def __init__(self, db: Session):
        self.db = db
        self.auth = AuthorizationService(db)

    def get_role(self, organization_id: str, role_id: str) -> Optional[OrganizationRole]:
        return self.db.query(OrganizationRole).filter(
            OrganizationRole.id == role_id,
            OrganizationRole.organization_id == organization_id,
        ).first()

    def get_role_by_name(self, organization_id: str, name: str) -> Optional[OrganizationRole]:
        return self.db.query(OrganizationRole).filter(
            OrganizationRole.organization_id == organization_id,
            OrganizationRole.name == name,
        ).first()

    def list_roles(self, organization_id: str) -> List[OrganizationRole]:
        """
        List roles of an organization, highest authority first.

        Args:
            organization_id: The organization

        Returns:
            Roles ordered by hierarchy level, then name
        """
        return self.db.query(OrganizationRole).filter(
            OrganizationRole.organization_id == organization_id
        ).order_by(OrganizationRole.hierarchy_level.asc(), OrganizationRole.name.asc()).all()

    def count_roles(self, organization_id: str) -> int:
        return self.db.query(OrganizationRole).filter(
            OrganizationRole.organization_id == organization_id
        ).count()

    def _name_taken(self, organization_id: str, name: str, exclude_role_id: Optional[str] = None) -> bool:
        query = self.db.query(OrganizationRole.id).filter(
            OrganizationRole.organization_id == organization_id,
            OrganizationRole.name == name,
        )
        if exclude_role_id:
            query = query.filter(OrganizationRole.id != exclude_role_id)
        return query.first() is not None

    def create_role(
        self,
        organization_id: str,
        name: str,
        hierarchy_level: int,
        acting_user_id: str,
    ) -> Result[OrganizationRole]:
        """
        Create a role in an organization.

        Args:
            organization_id: Organization to create the role in
            name: Role name, lowercase letters, digits and underscores
            hierarchy_level: 0 (highest authority) to 10
            acting_user_id: User performing the change, needs role.manage

        Returns:
            Result with the new role, or ValidationError, Forbidden,
            PermissionDenied or DuplicateName
        """

        def _create(db: Session) -> OrganizationRole:
            data = parse_input(
                RoleCreate,
                organization_id=organization_id,
                name=name,
                hierarchy_level=hierarchy_level,
            )
            self.auth.require_permission(
                data.organization_id, acting_user_id, OrgPermission.ROLE_MANAGE, ROLE_MANAGE_DENIED
            )

            if self._name_taken(data.organization_id, data.name):
                raise DuplicateName(
                    "A role with this name already exists",
                    details={"organization_id": data.organization_id, "name": data.name},
                )

            role = OrganizationRole(
                organization_id=data.organization_id,
                name=data.name,
                hierarchy_level=data.hierarchy_level,
            )
            db.add(role)
            db.flush()
            return role

        result = attempt(lambda: run_in_transaction(self.db, _create))
        if result.ok:
            logger.info(
                "role_created",
                role_id=result.value.id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        else:
            logger.info(
                "role_create_rejected",
                error=result.error.code,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result

    def update_role(
        self,
        organization_id: str,
        role_id: str,
        acting_user_id: str,
        name: Optional[str] = None,
        hierarchy_level: Optional[int] = None,
    ) -> Result[OrganizationRole]:
        """
        Partially update a role.

        Only provided fields change. Renaming re-checks uniqueness among the
        other roles of the organization.
        """

        def _update(db: Session) -> OrganizationRole:
            data = parse_input(
                RoleUpdate,
                organization_id=organization_id,
                role_id=role_id,
                name=name,
                hierarchy_level=hierarchy_level,
            )
            self.auth.require_permission(
                data.organization_id, acting_user_id, OrgPermission.ROLE_MANAGE, ROLE_MANAGE_DENIED
            )

            role = db.query(OrganizationRole).filter(
                OrganizationRole.id == data.role_id,
                OrganizationRole.organization_id == data.organization_id,
            ).with_for_update().first()
            if not role:
                raise NotFound("Role not found", details={"role_id": data.role_id})

            if data.name is not None and data.name != role.name:
                if self._name_taken(data.organization_id, data.name, exclude_role_id=role.id):
                    raise DuplicateName(
                        "A role with this name already exists",
                        details={"organization_id": data.organization_id, "name": data.name},
                    )
                role.name = data.name

            if data.hierarchy_level is not None:
                role.hierarchy_level = data.hierarchy_level

            role.updated_at = utcnow()
            db.flush()
            return role

        result = attempt(lambda: run_in_transaction(self.db, _update))
        if result.ok:
            logger.info("role_updated", role_id=role_id, organization_id=organization_id, user_id=acting_user_id)
        else:
            logger.info(
                "role_update_rejected",
                error=result.error.code,
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result

    def delete_role(self, organization_id: str, role_id: str, acting_user_id: str) -> Result[None]:
        """
        Delete a role, moving its members and invitations to a replacement role.

        Everything happens in one transaction: the role row is write-locked, the
        last-role floor and the role.manage holder guard are evaluated, then
        members and invitations are repointed before the role (and its
        permission rows) is removed.

        Returns:
            Result with None on success, or Forbidden, PermissionDenied,
            NotFound, LastRoleError, LastRoleManageHolderError or
            NoReplacementRole
        """
        reassigned = {"members": 0, "invitations": 0, "replacement_role_id": None}

        def _delete(db: Session) -> None:
            self.auth.require_permission(organization_id, acting_user_id, OrgPermission.ROLE_MANAGE, ROLE_MANAGE_DENIED)

            locked = lock_rows(
                db,
                OrganizationRole,
                OrganizationRole.id == role_id,
                OrganizationRole.organization_id == organization_id,
            )
            role = db.query(OrganizationRole).filter(OrganizationRole.id == role_id).first() if locked else None
            if not role:
                raise NotFound("Role not found", details={"role_id": role_id})

            roles = db.query(OrganizationRole).filter(
                OrganizationRole.organization_id == organization_id
            ).all()
            if len(roles) == 1:
                raise LastRoleError(
                    "Cannot delete the last role of an organization",
                    details={"role_id": role_id},
                )

            holds_role_manage = db.query(OrganizationRolePermission.id).filter(
                OrganizationRolePermission.role_id == role.id,
                OrganizationRolePermission.permission == OrgPermission.ROLE_MANAGE.value,
            ).first() is not None
            if holds_role_manage and not self.auth.has_multiple_role_manage_holders(organization_id, lock=True):
                raise LastRoleManageHolderError(
                    "Cannot delete the only role that can manage roles",
                    details={"role_id": role_id},
                )

            member_count = db.query(OrganizationMember).filter(
                OrganizationMember.organization_id == organization_id,
                OrganizationMember.role_id == role.id,
            ).count()
            invitation_count = db.query(OrganizationInvitation).filter(
                OrganizationInvitation.organization_id == organization_id,
                OrganizationInvitation.role_id == role.id,
            ).count()

            if member_count or invitation_count:
                replacement = select_replacement_role(role, roles)
                if not replacement:
                    raise NoReplacementRole(
                        "Failed to find replacement role",
                        details={"role_id": role_id},
                    )

                now = utcnow()
                reassigned["members"] = db.query(OrganizationMember).filter(
                    OrganizationMember.organization_id == organization_id,
                    OrganizationMember.role_id == role.id,
                ).update(
                    {OrganizationMember.role_id: replacement.id, OrganizationMember.updated_at: now},
                    synchronize_session="fetch",
                )
                reassigned["invitations"] = db.query(OrganizationInvitation).filter(
                    OrganizationInvitation.organization_id == organization_id,
                    OrganizationInvitation.role_id == role.id,
                ).update(
                    {OrganizationInvitation.role_id: replacement.id, OrganizationInvitation.updated_at: now},
                    synchronize_session="fetch",
                )
                reassigned["replacement_role_id"] = replacement.id

            db.delete(role)
            db.flush()

        result = attempt(lambda: run_in_transaction(self.db, _delete))
        if result.ok:
            logger.info(
                "role_deleted",
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
                replacement_role_id=reassigned["replacement_role_id"],
                reassigned_members=reassigned["members"],
                reassigned_invitations=reassigned["invitations"],
            )
        else:
            logger.info(
                "role_delete_rejected",
                error=result.error.code,
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result
