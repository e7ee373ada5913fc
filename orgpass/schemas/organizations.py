"""Organization schemas"""

import re
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

SLUG_PATTERN = re.compile(r"^[a-z0-9]+[a-z0-9_-]*[a-z0-9]+$")


def _validate_slug(value: str) -> str:
    if not SLUG_PATTERN.match(value):
        raise ValueError(
            "Slug must contain only lowercase letters, numbers, hyphens and underscores, "
            "and start and end with a letter or number"
        )
    return value


class SlugCheck(BaseModel):
    slug: str = Field(..., min_length=3, max_length=1024)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        return _validate_slug(v)


class OrganizationCreate(BaseModel):
    """Input for creating an organization"""

    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=3, max_length=1024)
    logo_url: Optional[str] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Organization name cannot be empty")
        return v.strip()

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: str) -> str:
        return _validate_slug(v)


class OrganizationUpdate(BaseModel):
    """Input for updating an organization (partial update)"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    slug: Optional[str] = Field(None, min_length=3, max_length=1024)
    logo_url: Optional[str] = None
    address: Optional[str] = None
    email: Optional[EmailStr] = None
    website: Optional[str] = Field(None, max_length=255)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is not None:
            return _validate_slug(v)
        return v
