"""SQLAlchemy models"""

from datetime import datetime, timezone
import uuid

import sqlalchemy as sa
from sqlalchemy import Column, String, Boolean, Text, Integer, ForeignKey, TIMESTAMP, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from orgpass.database.database import Base


def generate_id():
    """Generate a unique ID"""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching TIMESTAMP columns"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Organization(Base):
    """Organization model"""
    __tablename__ = "organizations"

    id = Column(String, primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(1024), unique=True, nullable=False)
    logo_url = Column(String, nullable=True)
    address = Column(Text, nullable=True)
    email = Column(String(255), unique=True, nullable=True)
    website = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    roles = relationship("OrganizationRole", back_populates="organization", cascade="all, delete-orphan")
    members = relationship("OrganizationMember", back_populates="organization", cascade="all, delete-orphan")
    invitations = relationship("OrganizationInvitation", back_populates="organization", cascade="all, delete-orphan")
    settings = relationship("OrganizationSetting", back_populates="organization", cascade="all, delete-orphan")

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "logo_url": self.logo_url,
            "address": self.address,
            "email": self.email,
            "website": self.website,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class User(Base):
    """
    User account.

    Accounts are owned by the authentication layer; orgpass only reads the
    id, email and display name to resolve invitations and notifications.
    """
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=generate_id)
    email = Column(String, unique=True, nullable=False)
    name = Column(String(255), nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    memberships = relationship("OrganizationMember", back_populates="user", cascade="all, delete-orphan")

    @property
    def display_name(self) -> str:
        return self.name or self.email.split("@")[0]


class OrganizationRole(Base):
    """
    Role within an organization.

    hierarchy_level runs from 0 (highest authority) to 10.
    """
    __tablename__ = "organization_roles"

    id = Column(String, primary_key=True, default=generate_id)
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    hierarchy_level = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="roles")
    permissions = relationship(
        "OrganizationRolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_organization_roles_org_name"),
        sa.CheckConstraint(
            "hierarchy_level >= 0 AND hierarchy_level <= 10",
            name="ck_organization_roles_hierarchy_level",
        ),
        sa.Index("ix_organization_roles_organization_id", "organization_id"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "name": self.name,
            "hierarchy_level": self.hierarchy_level,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OrganizationRolePermission(Base):
    """Permission granted to a role (one row per permission kind)"""
    __tablename__ = "organization_role_permissions"

    id = Column(String, primary_key=True, default=generate_id)
    role_id = Column(String, ForeignKey("organization_roles.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    permission = Column(String(50), nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    role = relationship("OrganizationRole", back_populates="permissions")

    __table_args__ = (
        sa.UniqueConstraint("role_id", "permission", name="uq_organization_role_permissions_role_permission"),
        sa.Index("ix_organization_role_permissions_org_permission", "organization_id", "permission"),
    )


class OrganizationMember(Base):
    """Membership of a user in an organization, with exactly one role"""
    __tablename__ = "organization_members"

    id = Column(String, primary_key=True, default=generate_id)
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    role_id = Column(String, ForeignKey("organization_roles.id"), nullable=False)
    is_owner = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    organization = relationship("Organization", back_populates="members")
    user = relationship("User", back_populates="memberships")
    role = relationship("OrganizationRole")

    __table_args__ = (
        sa.UniqueConstraint("organization_id", "user_id", name="uq_organization_members_org_user"),
        sa.Index("ix_organization_members_role_id", "role_id"),
    )


class OrganizationInvitation(Base):
    """
    Pending invitation of an email address into an organization.

    There is no stored status: a row is pending until expires_at passes and
    expired afterwards. Accepting, declining or revoking deletes the row.
    At most one row exists per (organization_id, email).
    """
    __tablename__ = "organization_invitations"

    id = Column(String, primary_key=True, default=generate_id)
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    email = Column(String, nullable=False)
    role_id = Column(String, ForeignKey("organization_roles.id"), nullable=False)
    invite_token = Column(String, unique=True, nullable=False)
    invited_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)
    expires_at = Column(TIMESTAMP, nullable=False)

    # Relationships
    organization = relationship("Organization", back_populates="invitations")
    role = relationship("OrganizationRole")
    inviter = relationship("User", foreign_keys=[invited_by])

    __table_args__ = (
        sa.UniqueConstraint("organization_id", "email", name="uq_organization_invitations_org_email"),
        sa.Index("ix_organization_invitations_email", "email"),
    )

    def is_expired(self, now: datetime | None = None) -> bool:
        return self.expires_at < (now or utcnow())

    @property
    def status(self) -> str:
        return "expired" if self.is_expired() else "pending"

    def to_dict(self):
        """Convert invitation to dictionary"""
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "email": self.email,
            "role_id": self.role_id,
            "invited_by": self.invited_by,
            "status": self.status,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class OrganizationSetting(Base):
    """Named JSON setting of an organization (e.g. billing customer id)"""
    __tablename__ = "organization_settings"

    id = Column(String, primary_key=True, default=generate_id)
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    value = Column(JSON, nullable=True)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)

    organization = relationship("Organization", back_populates="settings")

    __table_args__ = (
        sa.UniqueConstraint("organization_id", "name", name="uq_organization_settings_org_name"),
    )


class Notification(Base):
    """In-app notification addressed to a user"""
    __tablename__ = "notifications"

    id = Column(String, primary_key=True, default=generate_id)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    organization_id = Column(String, ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True)
    type = Column(String(20), default="info", nullable=False)  # info, success, warning, error
    title = Column(String(255), nullable=False)
    body = Column(Text, nullable=True)
    link = Column(String, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    __table_args__ = (
        sa.Index("ix_notifications_user_id", "user_id"),
    )
