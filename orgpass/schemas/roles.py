"""Role management schemas"""

import re
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from orgpass.templates import OrgPermission

ROLE_NAME_PATTERN = re.compile(r"^[a-z][a-z0-9_]*$")


def _validate_role_name(value: str) -> str:
    if not ROLE_NAME_PATTERN.match(value):
        raise ValueError(
            "Role name must start with a letter and contain only lowercase letters, numbers, and underscores"
        )
    return value


class RoleCreate(BaseModel):
    """Input for creating a role"""

    organization_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    hierarchy_level: int = Field(..., ge=0, le=10)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _validate_role_name(v)


class RoleUpdate(BaseModel):
    """Input for updating a role (partial update)"""

    organization_id: str = Field(..., min_length=1)
    role_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    hierarchy_level: Optional[int] = Field(None, ge=0, le=10)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            return _validate_role_name(v)
        return v


class RolePermissionsUpdate(BaseModel):
    """Input for replacing the permission set of a role"""

    organization_id: str = Field(..., min_length=1)
    role_id: str = Field(..., min_length=1)
    permissions: List[OrgPermission] = Field(default_factory=list)


class RoleWithPermissions(BaseModel):
    """A role together with the permissions it holds"""

    id: str
    organization_id: str
    name: str
    hierarchy_level: int
    permissions: List[OrgPermission] = Field(default_factory=list)
