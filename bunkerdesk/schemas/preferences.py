"""
Pydantic validation schemas for user preferences, workspaces and reminder
settings.
"""

import re
from typing import Any, Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from bunkerdesk.constants import PREFERENCE_KEYS, WORKSPACE_MEMBER_ROLES

HEX_COLOR_RE = re.compile(r"^#[0-9A-Fa-f]{6}$")


class PreferenceValueSchema(BaseModel):
    value: Any


def check_preference_key(category: str, key: str):
    """Raise ValueError for a category/key pair nothing reads."""
    if category not in PREFERENCE_KEYS:
        raise ValueError(f"category must be one of: {', '.join(PREFERENCE_KEYS)}")
    if key not in PREFERENCE_KEYS[category]:
        raise ValueError(f"{category} keys are: {', '.join(PREFERENCE_KEYS[category])}")


def _check_color(value):
    if value is None:
        return value
    if not HEX_COLOR_RE.match(value):
        raise ValueError("color must be a hex value like #3B82F6")
    return value.upper()


class WorkspaceCreateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(..., min_length=1, max_length=100)
    color: str = "#3B82F6"

    @field_validator("color")
    @classmethod
    def validate_color(cls, value):
        return _check_color(value)


class WorkspaceUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, value):
        return _check_color(value)


class NotificationSettingsSchema(BaseModel):
    """Schema for the call reminder digest settings"""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_email: Optional[EmailStr] = None
    days_before_reminder: Optional[int] = Field(None, ge=0, le=30)
    enabled: Optional[bool] = None


def _check_member_role(value):
    if value not in WORKSPACE_MEMBER_ROLES:
        raise ValueError(f"role must be one of: {', '.join(WORKSPACE_MEMBER_ROLES)}")
    return value


class WorkspaceMemberCreateSchema(BaseModel):
    """Schema for POST /api/workspaces/{id}/members; pick the user by id or email"""

    model_config = ConfigDict(str_strip_whitespace=True)

    user_id: Optional[int] = Field(None, gt=0)
    email: Optional[EmailStr] = None
    role: str = "member"

    @field_validator("email")
    @classmethod
    def lower_email(cls, value):
        return value.lower() if value else value

    @field_validator("role")
    @classmethod
    def validate_role(cls, value):
        return _check_member_role(value)


class WorkspaceMemberUpdateSchema(BaseModel):
    role: str

    @field_validator("role")
    @classmethod
    def validate_role(cls, value):
        return _check_member_role(value)


class ContactGroupCreateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(..., min_length=1, max_length=100)
    color: str = "#3B82F6"
    contact_ids: list[int] = Field(default_factory=list)

    @field_validator("color")
    @classmethod
    def validate_color(cls, value):
        return _check_color(value)


class ContactGroupUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    color: Optional[str] = None

    @field_validator("color")
    @classmethod
    def validate_color(cls, value):
        return _check_color(value)


class GroupContactsSchema(BaseModel):
    """Contact ids to add to or remove from a group"""

    contact_ids: list[int] = Field(..., min_length=1)
