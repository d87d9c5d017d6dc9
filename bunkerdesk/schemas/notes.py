"""
Pydantic validation schemas for saved notes and note shares.
"""

from typing import Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, model_validator


class NoteCreateSchema(BaseModel):
    """Schema for creating a note via POST /api/notes"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    title: str = Field(..., min_length=1, max_length=200)
    content: str = ""
    contact_id: Optional[int] = Field(None, gt=0)


class NoteUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    title: Optional[str] = Field(None, min_length=1, max_length=200)
    content: Optional[str] = None
    contact_id: Optional[int] = Field(None, gt=0)


class NoteShareSchema(BaseModel):
    """Share by recipient id or email"""

    model_config = ConfigDict(str_strip_whitespace=True)

    shared_with: Optional[int] = Field(None, gt=0)
    email: Optional[EmailStr] = None
    can_edit: bool = False

    @model_validator(mode="after")
    def require_recipient(self):
        if not self.shared_with and not self.email:
            raise ValueError("shared_with or email is required")
        return self


class NotepadSchema(BaseModel):
    content: str = ""
