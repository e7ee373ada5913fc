"""Invitation schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


def normalize_email(email: str) -> str:
    """Lowercase and strip an email address"""
    return email.lower().strip()


class InvitationCreate(BaseModel):
    """Input for sending or creating an invitation"""

    email: EmailStr
    role_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_email(v) if isinstance(v, str) else v


class InvitationUpdate(BaseModel):
    invitation_id: str = Field(..., min_length=1)
    organization_id: str = Field(..., min_length=1)
    role_id: str = Field(..., min_length=1)


class InvitationAccept(BaseModel):
    invitation_id: str = Field(..., min_length=1)
    user_email: EmailStr

    @field_validator("user_email", mode="before")
    @classmethod
    def normalize(cls, v: str) -> str:
        return normalize_email(v) if isinstance(v, str) else v


class InvitationInfo(BaseModel):
    """Invitation joined with its role, as listed to administrators"""

    id: str
    organization_id: str
    email: str
    role_id: str
    role_name: str
    hierarchy_level: int
    invited_by: Optional[str] = None
    status: str  # pending, expired
    created_at: Optional[datetime] = None
    expires_at: datetime


class UserInvitationInfo(InvitationInfo):
    """Invitation addressed to a user, with the inviting organization"""

    organization_name: str
    organization_slug: str
    invite_token: str
