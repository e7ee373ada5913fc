"""Membership schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class MemberAccess(BaseModel):
    """Effective role of a user within an organization"""

    role_id: str
    role_name: str
    hierarchy_level: int
    is_owner: bool


class MemberRoleUpdate(BaseModel):
    member_id: str = Field(..., min_length=1)
    role_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)


class MemberRemove(BaseModel):
    member_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)


class MemberInfo(BaseModel):
    """Member row joined with its user and role"""

    id: str
    organization_id: str
    user_id: str
    email: str
    name: Optional[str] = None
    role_id: str
    role_name: str
    hierarchy_level: int
    is_owner: bool
    created_at: Optional[datetime] = None
