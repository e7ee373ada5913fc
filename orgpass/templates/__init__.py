"""
Permission catalog for orgpass.

Permissions are a fixed enumeration; roles combine them. New organizations
are seeded with DEFAULT_ROLES.
"""

from orgpass.templates.role_definitions import (
    ALL_PERMISSIONS,
    CONTRIBUTOR_ROLE,
    DEFAULT_ROLES,
    EDITOR_ROLE,
    OWNER_ROLE,
    OrgPermission,
    RoleDefinition,
)

__all__ = [
    "ALL_PERMISSIONS",
    "CONTRIBUTOR_ROLE",
    "DEFAULT_ROLES",
    "EDITOR_ROLE",
    "OWNER_ROLE",
    "OrgPermission",
    "RoleDefinition",
]
