"""Role permission assignment"""

from typing import List

import structlog
from sqlalchemy.orm import Session

from orgpass.database.database import run_in_transaction
from orgpass.database.models import OrganizationRole, OrganizationRolePermission
from orgpass.errors import LastRoleManageHolderError, NotFound
from orgpass.results import Result, attempt
from orgpass.schemas import parse_input
from orgpass.schemas.roles import RolePermissionsUpdate
from orgpass.services.authorization_service import AuthorizationService
from orgpass.templates import OrgPermission

logger = structlog.get_logger(__name__)


def _catalog_order(permissions) -> List[OrgPermission]:
    order = list(OrgPermission)
    return sorted(permissions, key=order.index)


class RolePermissionService:
    """Grants and revokes permissions on organization roles."""

    def __init__(self, db: Session):
        self.db = db
        self.auth = AuthorizationService(db)

    def get_role_permissions(self, role_id: str) -> List[OrgPermission]:
        """Permissions held by a role, in catalog order"""
        return _catalog_order(self.auth.get_role_permission_set(role_id))

    def role_has_permission(self, role_id: str, permission: OrgPermission) -> bool:
        return self.db.query(OrganizationRolePermission.id).filter(
            OrganizationRolePermission.role_id == role_id,
            OrganizationRolePermission.permission == OrgPermission.parse(permission).value,
        ).first() is not None

    def update_role_permissions(
        self,
        organization_id: str,
        role_id: str,
        permissions: List[OrgPermission],
        acting_user_id: str,
    ) -> Result[List[OrgPermission]]:
        """
        Replace the permission set of a role.

        Only the difference between the current and the requested set is
        written. Removing role.manage is refused when no other role of the
        organization holds it; the holder count is read under lock in the
        same transaction as the delete.

        Args:
            organization_id: Organization owning the role
            role_id: Role to update
            permissions: Complete new permission set (may be empty)
            acting_user_id: User performing the change, needs role.manage

        Returns:
            Result with the resulting permissions in catalog order, or
            ValidationError, Forbidden, PermissionDenied, NotFound or
            LastRoleManageHolderError
        """
        diff = {"added": [], "removed": []}

        def _update(db: Session) -> List[OrgPermission]:
            data = parse_input(
                RolePermissionsUpdate,
                organization_id=organization_id,
                role_id=role_id,
                permissions=list(permissions),
            )
            self.auth.require_permission(
                data.organization_id,
                acting_user_id,
                OrgPermission.ROLE_MANAGE,
                "You do not have permission to manage roles",
            )

            role = db.query(OrganizationRole).filter(
                OrganizationRole.id == data.role_id,
                OrganizationRole.organization_id == data.organization_id,
            ).with_for_update().first()
            if not role:
                raise NotFound("Role not found", details={"role_id": data.role_id})

            current = self.auth.get_role_permission_set(role.id)
            requested = set(data.permissions)
            to_delete = current - requested
            to_add = requested - current

            if OrgPermission.ROLE_MANAGE in to_delete:
                if not self.auth.has_multiple_role_manage_holders(data.organization_id, lock=True):
                    raise LastRoleManageHolderError(
                        "At least one role must keep the role.manage permission",
                        details={"role_id": role.id},
                    )

            if to_delete:
                db.query(OrganizationRolePermission).filter(
                    OrganizationRolePermission.role_id == role.id,
                    OrganizationRolePermission.permission.in_([p.value for p in to_delete]),
                ).delete(synchronize_session="fetch")

            for permission in _catalog_order(to_add):
                db.add(OrganizationRolePermission(
                    role_id=role.id,
                    organization_id=data.organization_id,
                    permission=permission.value,
                ))
            db.flush()

            diff["added"] = [p.value for p in _catalog_order(to_add)]
            diff["removed"] = [p.value for p in _catalog_order(to_delete)]
            return _catalog_order(requested)

        result = attempt(lambda: run_in_transaction(self.db, _update))
        if result.ok:
            logger.info(
                "role_permissions_updated",
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
                added=diff["added"],
                removed=diff["removed"],
            )
        else:
            logger.info(
                "role_permissions_update_rejected",
                error=result.error.code,
                role_id=role_id,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result
