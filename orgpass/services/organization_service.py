"""Organization service"""

from typing import Any, Dict, List, Optional

import structlog
from sqlalchemy.orm import Session

from orgpass.database.database import run_in_transaction
from orgpass.database.models import (
    Organization,
    OrganizationMember,
    OrganizationRole,
    OrganizationRolePermission,
    OrganizationSetting,
    User,
    utcnow,
)
from orgpass.errors import Conflict, NotFound
from orgpass.results import Result, attempt
from orgpass.schemas import parse_input
from orgpass.schemas.organizations import OrganizationCreate, OrganizationUpdate, SlugCheck
from orgpass.schemas.roles import RoleWithPermissions
from orgpass.services.authorization_service import AuthorizationService
from orgpass.services.notification_service import NotificationService
from orgpass.templates import DEFAULT_ROLES, OWNER_ROLE, OrgPermission

logger = structlog.get_logger(__name__)


class OrganizationService:
    """Organization management service"""

    def __init__(self, db: Session):
        self.db = db
        self.auth = AuthorizationService(db)
        self.notifications = NotificationService(db)

    def get_organization(self, organization_id: str) -> Optional[Organization]:
        """Get an organization by ID"""
        return self.db.query(Organization).filter(Organization.id == organization_id).first()

    def get_organization_by_slug(self, slug: str) -> Optional[Organization]:
        """Get an organization by slug"""
        return self.db.query(Organization).filter(Organization.slug == slug).first()

    def check_if_slug_is_available(self, slug: str) -> Result[bool]:
        """Whether a (valid) slug is still free"""

        def _check() -> bool:
            data = parse_input(SlugCheck, slug=slug)
            return self.get_organization_by_slug(data.slug) is None

        return attempt(_check)

    def create_organization(
        self,
        name: str,
        slug: str,
        owner_user_id: str,
        logo_url: Optional[str] = None,
        address: Optional[str] = None,
        email: Optional[str] = None,
        website: Optional[str] = None,
    ) -> Result[Organization]:
        """
        Create an organization owned by ``owner_user_id``.

        In one transaction: inserts the organization, seeds the default
        roles with their permissions, adds the creator as owner member with
        the owner role and notifies them.

        Returns:
            Result with the organization, or ValidationError, NotFound
            (unknown owner) or Conflict (slug or email taken)
        """

        def _create(db: Session) -> Organization:
            data = parse_input(
                OrganizationCreate,
                name=name,
                slug=slug,
                logo_url=logo_url,
                address=address,
                email=email,
                website=website,
            )

            owner = db.query(User).filter(User.id == owner_user_id).first()
            if not owner:
                raise NotFound("User not found", details={"user_id": owner_user_id})

            if self.get_organization_by_slug(data.slug):
                raise Conflict("Organization with this slug already exists", details={"slug": data.slug})
            if data.email and db.query(Organization.id).filter(Organization.email == data.email).first():
                raise Conflict("Organization with this email already exists", details={"email": data.email})

            organization = Organization(
                name=data.name,
                slug=data.slug,
                logo_url=data.logo_url,
                address=data.address,
                email=data.email,
                website=data.website,
            )
            db.add(organization)
            db.flush()

            owner_role = None
            for definition in DEFAULT_ROLES:
                role = OrganizationRole(
                    organization_id=organization.id,
                    name=definition.name,
                    hierarchy_level=definition.hierarchy_level,
                )
                db.add(role)
                db.flush()
                for permission in OrgPermission:
                    if permission in definition.permissions:
                        db.add(OrganizationRolePermission(
                            role_id=role.id,
                            organization_id=organization.id,
                            permission=permission.value,
                        ))
                if definition.name == OWNER_ROLE.name:
                    owner_role = role

            db.add(OrganizationMember(
                organization_id=organization.id,
                user_id=owner.id,
                role_id=owner_role.id,
                is_owner=True,
            ))

            self.notifications.notify(
                owner.id,
                title=f"{organization.name} organization created",
                body="Invite your team to get started.",
                organization_id=organization.id,
                type="success",
            )
            db.flush()
            return organization

        result = attempt(lambda: run_in_transaction(self.db, _create))
        if result.ok:
            logger.info("organization_created", organization_id=result.value.id, slug=slug, user_id=owner_user_id)
        else:
            logger.info("organization_create_rejected", error=result.error.code, slug=slug, user_id=owner_user_id)
        return result

    def update_organization(
        self,
        organization_id: str,
        acting_user_id: str,
        **changes: Any,
    ) -> Result[Organization]:
        """
        Partially update an organization's profile.

        Accepted fields: name, slug, logo_url, address, email, website.
        Requires organization.manage.
        """

        def _update(db: Session) -> Organization:
            data = parse_input(OrganizationUpdate, **changes)
            self.auth.require_permission(
                organization_id,
                acting_user_id,
                OrgPermission.ORGANIZATION_MANAGE,
                "You do not have permission to manage this organization",
            )

            organization = db.query(Organization).filter(
                Organization.id == organization_id
            ).with_for_update().first()
            if not organization:
                raise NotFound("Organization not found", details={"organization_id": organization_id})

            updates = data.model_dump(exclude_unset=True)
            if updates.get("slug") and updates["slug"] != organization.slug:
                if self.get_organization_by_slug(updates["slug"]):
                    raise Conflict("Organization with this slug already exists", details={"slug": updates["slug"]})
            if updates.get("email") and updates["email"] != organization.email:
                taken = db.query(Organization.id).filter(
                    Organization.email == updates["email"],
                    Organization.id != organization_id,
                ).first()
                if taken:
                    raise Conflict("Organization with this email already exists", details={"email": updates["email"]})

            for field, value in updates.items():
                setattr(organization, field, value)
            organization.updated_at = utcnow()
            db.flush()
            return organization

        result = attempt(lambda: run_in_transaction(self.db, _update))
        if result.ok:
            logger.info("organization_updated", organization_id=organization_id, user_id=acting_user_id)
        else:
            logger.info(
                "organization_update_rejected",
                error=result.error.code,
                organization_id=organization_id,
                user_id=acting_user_id,
            )
        return result

    def get_organization_roles(self, organization_id: str) -> List[RoleWithPermissions]:
        """
        Roles of an organization with their permissions.

        Ordered by hierarchy level descending (lowest authority first).
        """
        roles = self.db.query(OrganizationRole).filter(
            OrganizationRole.organization_id == organization_id
        ).order_by(OrganizationRole.hierarchy_level.desc(), OrganizationRole.name.asc()).all()

        permission_rows = self.db.query(
            OrganizationRolePermission.role_id,
            OrganizationRolePermission.permission,
        ).filter(
            OrganizationRolePermission.organization_id == organization_id
        ).all()

        by_role: Dict[str, set] = {}
        for row in permission_rows:
            by_role.setdefault(row.role_id, set()).add(OrgPermission.parse(row.permission))

        catalog = list(OrgPermission)
        return [
            RoleWithPermissions(
                id=role.id,
                organization_id=role.organization_id,
                name=role.name,
                hierarchy_level=role.hierarchy_level,
                permissions=sorted(by_role.get(role.id, set()), key=catalog.index),
            )
            for role in roles
        ]

    def get_role_permissions_map(self, organization_id: str) -> Dict[str, List[OrgPermission]]:
        """Map of role name to the permissions it holds"""
        return {role.name: role.permissions for role in self.get_organization_roles(organization_id)}

    def get_user_memberships(self, user_id: str) -> List[Dict[str, Any]]:
        """Organizations a user belongs to, with the role held in each"""
        rows = self.db.query(OrganizationMember, Organization, OrganizationRole).join(
            Organization, Organization.id == OrganizationMember.organization_id
        ).join(
            OrganizationRole, OrganizationRole.id == OrganizationMember.role_id
        ).filter(
            OrganizationMember.user_id == user_id
        ).order_by(Organization.name.asc()).all()

        return [
            {
                "member_id": member.id,
                "organization": organization.to_dict(),
                "role_id": role.id,
                "role_name": role.name,
                "hierarchy_level": role.hierarchy_level,
                "is_owner": bool(member.is_owner),
            }
            for member, organization, role in rows
        ]

    # Settings

    def get_setting(self, organization_id: str, name: str) -> Optional[Any]:
        setting = self.db.query(OrganizationSetting).filter(
            OrganizationSetting.organization_id == organization_id,
            OrganizationSetting.name == name,
        ).first()
        return setting.value if setting else None

    def get_settings(self, organization_id: str) -> Dict[str, Any]:
        settings = self.db.query(OrganizationSetting).filter(
            OrganizationSetting.organization_id == organization_id
        ).all()
        return {s.name: s.value for s in settings}

    def put_setting(self, db: Session, organization_id: str, name: str, value: Any) -> OrganizationSetting:
        """Insert or overwrite a setting inside the caller's transaction"""
        setting = db.query(OrganizationSetting).filter(
            OrganizationSetting.organization_id == organization_id,
            OrganizationSetting.name == name,
        ).with_for_update().first()
        if setting:
            setting.value = value
            setting.updated_at = utcnow()
        else:
            setting = OrganizationSetting(organization_id=organization_id, name=name, value=value)
            db.add(setting)
        db.flush()
        return setting

    def set_setting(self, organization_id: str, name: str, value: Any, acting_user_id: str) -> Result[OrganizationSetting]:
        """Write a setting; requires setting.manage"""

        def _set(db: Session) -> OrganizationSetting:
            self.auth.require_permission(
                organization_id,
                acting_user_id,
                OrgPermission.SETTING_MANAGE,
                "You do not have permission to manage settings",
            )
            return self.put_setting(db, organization_id, name, value)

        result = attempt(lambda: run_in_transaction(self.db, _set))
        if result.ok:
            logger.info("organization_setting_updated", organization_id=organization_id, name=name, user_id=acting_user_id)
        else:
            logger.info(
                "organization_setting_update_rejected",
                error=result.error.code,
                organization_id=organization_id,
                name=name,
                user_id=acting_user_id,
            )
        return result
