"""
Pydantic validation schemas for logged calls and emails.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from bunkerdesk.constants import COMMUNICATION_TYPES
from bunkerdesk.schemas.common import naive_utc, normalize_phone, blank_to_none


class CallCreateSchema(BaseModel):
    """Schema for logging a call via POST /api/calls"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    contact_id: int = Field(..., gt=0)
    call_date: datetime = Field(..., description="When the call happened")
    duration: Optional[int] = Field(None, ge=0, description="Call length in minutes")
    spoke_with: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=40)
    communication_type: str = Field("phone")
    notes: Optional[str] = None

    @field_validator("communication_type")
    @classmethod
    def validate_type(cls, value: str) -> str:
        if value not in COMMUNICATION_TYPES:
            raise ValueError(f"communication_type must be one of: {', '.join(COMMUNICATION_TYPES)}")
        return value

    @field_validator("phone_number", mode="before")
    @classmethod
    def normalize_phone(cls, value):
        return normalize_phone(value)

    @field_validator("call_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class CallUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    call_date: Optional[datetime] = None
    duration: Optional[int] = Field(None, ge=0)
    spoke_with: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=40)
    communication_type: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("communication_type")
    @classmethod
    def validate_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if value not in COMMUNICATION_TYPES:
            raise ValueError(f"communication_type must be one of: {', '.join(COMMUNICATION_TYPES)}")
        return value

    @field_validator("phone_number", mode="before")
    @classmethod
    def normalize_phone(cls, value):
        return normalize_phone(value)

    @field_validator("call_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class EmailCreateSchema(BaseModel):
    """Schema for logging an email via POST /api/emails"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    contact_id: int = Field(..., gt=0)
    email_date: datetime
    subject: Optional[str] = Field(None, max_length=255)
    emailed_to: Optional[str] = Field(None, max_length=100)
    email_address: Optional[EmailStr] = None
    notes: Optional[str] = None

    @field_validator("email_address", mode="before")
    @classmethod
    def empty_email(cls, value):
        return blank_to_none(value)

    @field_validator("email_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class EmailUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    email_date: Optional[datetime] = None
    subject: Optional[str] = Field(None, max_length=255)
    emailed_to: Optional[str] = Field(None, max_length=100)
    email_address: Optional[EmailStr] = None
    notes: Optional[str] = None

    @field_validator("email_address", mode="before")
    @classmethod
    def empty_email(cls, value):
        return blank_to_none(value)

    @field_validator("email_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)
