"""
Pydantic validation schemas for contacts, contact persons and vessels.
"""

from typing import Optional
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from bunkerdesk.constants import PHONE_TYPES, COMPANY_SIZE_OPTIONS, CONTACT_STATUS_FIELDS
from bunkerdesk.schemas.common import normalize_phone as _normalize_phone, blank_to_none as _blank_to_none


def _check_phone_type(value):
    if value is None or value == "":
        return None
    if value not in PHONE_TYPES:
        raise ValueError(f"phone type must be one of: {', '.join(PHONE_TYPES)}")
    return value


class ContactPersonSchema(BaseModel):
    """Schema for a person at a contact's company"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(..., min_length=1, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=40)
    phone_type: Optional[str] = Field("office")
    mobile: Optional[str] = Field(None, max_length=40)
    mobile_type: Optional[str] = Field("mobile")
    email: Optional[EmailStr] = None
    is_primary: bool = False

    @field_validator("phone_type", "mobile_type")
    @classmethod
    def validate_phone_types(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone_type(value)

    @field_validator("phone", "mobile", mode="before")
    @classmethod
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_phone(value)

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, value):
        return _blank_to_none(value)


class ContactPersonUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    job_title: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=40)
    phone_type: Optional[str] = None
    mobile: Optional[str] = Field(None, max_length=40)
    mobile_type: Optional[str] = None
    email: Optional[EmailStr] = None
    is_primary: Optional[bool] = None

    @field_validator("phone_type", "mobile_type")
    @classmethod
    def validate_phone_types(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone_type(value)

    @field_validator("phone", "mobile", mode="before")
    @classmethod
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_phone(value)

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, value):
        return _blank_to_none(value)


class ContactCreateSchema(BaseModel):
    """Schema for creating a new contact via POST /api/contacts"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    # Required fields
    name: str = Field(..., min_length=1, max_length=200, description="Contact or company name")

    # Optional fields
    phone: Optional[str] = Field(None, max_length=40)
    phone_type: Optional[str] = Field("office")
    email: Optional[EmailStr] = None
    company: Optional[str] = Field(None, max_length=200)
    company_size: Optional[str] = None
    company_excerpt: Optional[str] = None
    website: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = Field(None, max_length=64)
    city: Optional[str] = Field(None, max_length=100)
    post_code: Optional[str] = Field(None, max_length=20)
    reminder_days: Optional[int] = Field(None, ge=1, description="Days between calls")
    notes: Optional[str] = None

    # Status
    is_client: bool = False
    has_traction: bool = False
    is_jammed: bool = False
    is_dead: bool = False
    jammed_reason: Optional[str] = Field(None, max_length=255)
    priority_rank: Optional[int] = Field(None, ge=0, le=5)

    # Replaces the contact's persons when provided
    persons: Optional[list[ContactPersonSchema]] = None

    @field_validator("phone_type")
    @classmethod
    def validate_phone_type(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone_type(value)

    @field_validator("company_size")
    @classmethod
    def validate_company_size(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if value not in COMPANY_SIZE_OPTIONS:
            raise ValueError(f"company_size must be one of: {', '.join(COMPANY_SIZE_OPTIONS)}")
        return value

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_phone(value)

    @field_validator("email", "reminder_days", "priority_rank", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)


class ContactUpdateSchema(BaseModel):
    """Schema for updating an existing contact via PUT /api/contacts/{id}"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    # All fields optional for updates
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    phone: Optional[str] = Field(None, max_length=40)
    phone_type: Optional[str] = None
    email: Optional[EmailStr] = None
    company: Optional[str] = Field(None, max_length=200)
    company_size: Optional[str] = None
    company_excerpt: Optional[str] = None
    website: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    timezone: Optional[str] = Field(None, max_length=64)
    city: Optional[str] = Field(None, max_length=100)
    post_code: Optional[str] = Field(None, max_length=20)
    reminder_days: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = None
    is_client: Optional[bool] = None
    has_traction: Optional[bool] = None
    is_jammed: Optional[bool] = None
    is_dead: Optional[bool] = None
    jammed_reason: Optional[str] = Field(None, max_length=255)
    priority_rank: Optional[int] = Field(None, ge=0, le=5)
    persons: Optional[list[ContactPersonSchema]] = None

    @field_validator("phone_type")
    @classmethod
    def validate_phone_type(cls, value: Optional[str]) -> Optional[str]:
        return _check_phone_type(value)

    @field_validator("company_size")
    @classmethod
    def validate_company_size(cls, value: Optional[str]) -> Optional[str]:
        if value is None or value == "":
            return None
        if value not in COMPANY_SIZE_OPTIONS:
            raise ValueError(f"company_size must be one of: {', '.join(COMPANY_SIZE_OPTIONS)}")
        return value

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone(cls, value: Optional[str]) -> Optional[str]:
        return _normalize_phone(value)

    @field_validator("email", "reminder_days", "priority_rank", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return _blank_to_none(value)


class ContactStatusSchema(BaseModel):
    """Schema for PUT /api/contacts/{id}/status"""

    field: str
    value: bool
    jammed_reason: Optional[str] = Field(None, max_length=255)

    @field_validator("field")
    @classmethod
    def validate_field(cls, value: str) -> str:
        if value not in CONTACT_STATUS_FIELDS:
            raise ValueError(f"field must be one of: {', '.join(CONTACT_STATUS_FIELDS)}")
        return value


class DeleteAllContactsSchema(BaseModel):
    confirmation: str

    @field_validator("confirmation")
    @classmethod
    def require_phrase(cls, value: str) -> str:
        if value != "DELETE ALL":
            raise ValueError("confirmation must be exactly 'DELETE ALL'")
        return value


class DeleteDuplicatesSchema(BaseModel):
    keep: str = "newest"

    @field_validator("keep")
    @classmethod
    def validate_keep(cls, value: str) -> str:
        if value not in ("newest", "oldest"):
            raise ValueError("keep must be 'newest' or 'oldest'")
        return value


class VesselCreateSchema(BaseModel):
    """Schema for creating a vessel under a contact"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    vessel_name: str = Field(..., min_length=1, max_length=150)
    imo_number: Optional[str] = Field(None, max_length=20)
    vessel_type: Optional[str] = Field(None, max_length=100)
    marine_traffic_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None

    @field_validator("imo_number")
    @classmethod
    def validate_imo(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        digits = value.upper().removeprefix("IMO").strip()
        if not (digits.isdigit() and len(digits) == 7):
            raise ValueError("imo_number must be 7 digits")
        return digits


class VesselUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    vessel_name: Optional[str] = Field(None, min_length=1, max_length=150)
    imo_number: Optional[str] = Field(None, max_length=20)
    vessel_type: Optional[str] = Field(None, max_length=100)
    marine_traffic_url: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None

    @field_validator("imo_number")
    @classmethod
    def validate_imo(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        digits = value.upper().removeprefix("IMO").strip()
        if not (digits.isdigit() and len(digits) == 7):
            raise ValueError("imo_number must be 7 digits")
        return digits
