"""
Permission catalog and default role definitions.

This module contains:
- OrgPermission enum: the closed set of coarse permissions a role may hold
- RoleDefinition: Dataclass describing a role seeded into new organizations
- DEFAULT_ROLES: Roles every organization starts with
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Iterable, List, Optional


class OrgPermission(str, Enum):
    """
    Permissions a role can hold within an organization.

    Values are the strings stored in organization_role_permissions.permission.
    """

    ROLE_MANAGE = "role.manage"
    ORGANIZATION_MANAGE = "organization.manage"
    MEMBER_MANAGE = "member.manage"
    INVITATION_MANAGE = "invitation.manage"
    SETTING_MANAGE = "setting.manage"
    MEDIA_MANAGE = "media.manage"

    @classmethod
    def parse(cls, value: "str | OrgPermission") -> "OrgPermission":
        """Coerce a stored string into the enum, raising ValueError if unknown."""
        return value if isinstance(value, cls) else cls(value)

    @classmethod
    def parse_many(cls, values: Iterable["str | OrgPermission"]) -> FrozenSet["OrgPermission"]:
        return frozenset(cls.parse(v) for v in values)


ALL_PERMISSIONS: FrozenSet[OrgPermission] = frozenset(OrgPermission)


@dataclass
class RoleDefinition:
    """
    Defines a role seeded into every new organization.

    Attributes:
        name: Role name (lowercase, underscores)
        hierarchy_level: 0 is the highest authority, 10 the lowest
        permissions: Permissions granted to the role
        description: Human-readable description of the role
    """

    name: str
    hierarchy_level: int
    permissions: FrozenSet[OrgPermission] = field(default_factory=frozenset)
    description: Optional[str] = None


OWNER_ROLE = RoleDefinition(
    name="owner",
    hierarchy_level=0,
    permissions=ALL_PERMISSIONS,
    description="Full control over the organization",
)

EDITOR_ROLE = RoleDefinition(
    name="editor",
    hierarchy_level=2,
    permissions=frozenset({
        OrgPermission.MEMBER_MANAGE,
        OrgPermission.INVITATION_MANAGE,
        OrgPermission.SETTING_MANAGE,
        OrgPermission.MEDIA_MANAGE,
    }),
    description="Manages members, invitations, settings and media",
)

CONTRIBUTOR_ROLE = RoleDefinition(
    name="contributor",
    hierarchy_level=5,
    permissions=frozenset({OrgPermission.MEDIA_MANAGE}),
    description="Manages media",
)

DEFAULT_ROLES: List[RoleDefinition] = [OWNER_ROLE, EDITOR_ROLE, CONTRIBUTOR_ROLE]
