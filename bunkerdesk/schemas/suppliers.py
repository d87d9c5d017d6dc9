"""
Pydantic validation schemas for suppliers, their contacts, orders and ports.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from bunkerdesk.constants import PHONE_TYPES, ORDER_STATUS_OPTIONS
from bunkerdesk.schemas.common import naive_utc, normalize_phone, blank_to_none


def _check_phone_type(value):
    if value is None or value == "":
        return None
    if value not in PHONE_TYPES:
        raise ValueError(f"phone type must be one of: {', '.join(PHONE_TYPES)}")
    return value


def _clean_names(values):
    if values is None:
        return []
    return [v.strip() for v in values if isinstance(v, str) and v.strip()]


class SupplierCreateSchema(BaseModel):
    """Schema for creating a supplier via POST /api/suppliers"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    company_name: str = Field(..., min_length=1, max_length=200)
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    general_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=40)
    website: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    supplier_type: Optional[str] = Field(None, max_length=100)
    products_services: Optional[str] = None
    payment_terms: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    ports: Optional[str] = Field(None, description="Semicolon separated port names")
    fuel_types: Optional[str] = Field(None, description="Semicolon separated fuel grades")
    default_has_barge: bool = False
    default_has_truck: bool = False
    default_has_expipe: bool = False
    notes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone(cls, value):
        return normalize_phone(value)

    @field_validator("email", "general_email", "currency", "rating", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return blank_to_none(value)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class SupplierUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    company_name: Optional[str] = Field(None, min_length=1, max_length=200)
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    general_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=40)
    website: Optional[str] = Field(None, max_length=255)
    address: Optional[str] = Field(None, max_length=255)
    country: Optional[str] = Field(None, max_length=100)
    supplier_type: Optional[str] = Field(None, max_length=100)
    products_services: Optional[str] = None
    payment_terms: Optional[str] = Field(None, max_length=100)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    ports: Optional[str] = None
    fuel_types: Optional[str] = None
    default_has_barge: Optional[bool] = None
    default_has_truck: Optional[bool] = None
    default_has_expipe: Optional[bool] = None
    notes: Optional[str] = None
    rating: Optional[int] = Field(None, ge=1, le=5)

    @field_validator("phone", mode="before")
    @classmethod
    def normalize_phone(cls, value):
        return normalize_phone(value)

    @field_validator("email", "general_email", "currency", "rating", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        return blank_to_none(value)

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else value


class SupplierContactSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: str = Field(..., min_length=1, max_length=100)
    title: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=40)
    phone_type: Optional[str] = "office"
    mobile: Optional[str] = Field(None, max_length=40)
    mobile_type: Optional[str] = "mobile"
    notes: Optional[str] = None
    is_primary: bool = False
    display_order: Optional[int] = Field(None, ge=0)

    @field_validator("phone_type", "mobile_type")
    @classmethod
    def validate_phone_types(cls, value):
        return _check_phone_type(value)

    @field_validator("phone", "mobile", mode="before")
    @classmethod
    def normalize_phone(cls, value):
        return normalize_phone(value)

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, value):
        return blank_to_none(value)


class SupplierContactUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    title: Optional[str] = Field(None, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=40)
    phone_type: Optional[str] = None
    mobile: Optional[str] = Field(None, max_length=40)
    mobile_type: Optional[str] = None
    notes: Optional[str] = None
    is_primary: Optional[bool] = None
    display_order: Optional[int] = Field(None, ge=0)

    @field_validator("phone_type", "mobile_type")
    @classmethod
    def validate_phone_types(cls, value):
        return _check_phone_type(value)

    @field_validator("phone", "mobile", mode="before")
    @classmethod
    def normalize_phone(cls, value):
        return normalize_phone(value)

    @field_validator("email", mode="before")
    @classmethod
    def empty_email(cls, value):
        return blank_to_none(value)


class SupplierOrderSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    order_number: Optional[str] = Field(None, max_length=100)
    order_date: datetime
    delivery_date: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: str = "pending"
    items: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        if value not in ORDER_STATUS_OPTIONS:
            raise ValueError(f"status must be one of: {', '.join(ORDER_STATUS_OPTIONS)}")
        return value

    @field_validator("order_date", "delivery_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class SupplierOrderUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    order_number: Optional[str] = Field(None, max_length=100)
    order_date: Optional[datetime] = None
    delivery_date: Optional[datetime] = None
    total_amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    status: Optional[str] = None
    items: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if value not in ORDER_STATUS_OPTIONS:
            raise ValueError(f"status must be one of: {', '.join(ORDER_STATUS_OPTIONS)}")
        return value

    @field_validator("order_date", "delivery_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class SupplierPortCreateSchema(BaseModel):
    """
    Schema for POST /api/suppliers/{id}/ports.

    port_name may hold several names separated by ";"; one port is created
    per non-empty name, all sharing the same flags.
    """

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    port_name: str = Field(..., min_length=1)
    has_barge: Optional[bool] = None
    has_truck: Optional[bool] = None
    has_expipe: Optional[bool] = None
    custom_delivery_methods: list[str] = Field(default_factory=list)
    has_vlsfo: bool = False
    has_lsmgo: bool = False
    custom_fuel_types: list[str] = Field(default_factory=list)
    notes: Optional[str] = None

    @field_validator("custom_delivery_methods", "custom_fuel_types", mode="before")
    @classmethod
    def clean_lists(cls, value):
        return _clean_names(value)

    def port_names(self) -> list[str]:
        return [name.strip() for name in self.port_name.split(";") if name.strip()]


class SupplierPortUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    port_name: Optional[str] = Field(None, min_length=1, max_length=100)
    has_barge: Optional[bool] = None
    has_truck: Optional[bool] = None
    has_expipe: Optional[bool] = None
    custom_delivery_methods: Optional[list[str]] = None
    has_vlsfo: Optional[bool] = None
    has_lsmgo: Optional[bool] = None
    custom_fuel_types: Optional[list[str]] = None
    notes: Optional[str] = None

    @field_validator("custom_delivery_methods", "custom_fuel_types", mode="before")
    @classmethod
    def clean_lists(cls, value):
        if value is None:
            return None
        return _clean_names(value)


class DeletePortDuplicatesSchema(BaseModel):
    # {port name, any case or spacing: port id to keep}
    keep: dict[str, int] = Field(default_factory=dict)
