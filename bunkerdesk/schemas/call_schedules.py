"""
Pydantic validation schemas for call schedules.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator
from bunkerdesk.constants import PRIORITY_LABEL_OPTIONS, SCHEDULE_CONTACT_STATUS_OPTIONS
from bunkerdesk.schemas.common import naive_utc


def _check_label(value):
    if value is None:
        return value
    if value not in PRIORITY_LABEL_OPTIONS:
        raise ValueError(f"priority_label must be one of: {', '.join(PRIORITY_LABEL_OPTIONS)}")
    return value


def _check_status(value):
    if value is None:
        return value
    if value not in SCHEDULE_CONTACT_STATUS_OPTIONS:
        raise ValueError(f"contact_status must be one of: {', '.join(SCHEDULE_CONTACT_STATUS_OPTIONS)}")
    return value


class GenerateScheduleSchema(BaseModel):
    """Schema for POST /api/goals/{id}/schedule/generate"""

    total_calls: int = Field(..., ge=1, le=200)
    deadline: datetime
    call_duration_mins: int = Field(10, ge=1, le=240)
    replace_existing: bool = True

    @field_validator("deadline")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class ScheduleSlotCreateSchema(BaseModel):
    """Schema for inserting a slot via POST /api/goals/{id}/schedule"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    contact_id: Optional[int] = Field(None, gt=0)
    contact_name: Optional[str] = Field(None, max_length=200)
    priority_label: str = "Cold"
    contact_status: str = "none"
    call_duration_mins: int = Field(10, ge=1, le=240)
    scheduled_time: Optional[datetime] = None
    timezone_label: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None
    position: Optional[int] = Field(None, description="Index to insert at; appends when omitted")

    @field_validator("priority_label")
    @classmethod
    def validate_label(cls, value):
        return _check_label(value)

    @field_validator("contact_status")
    @classmethod
    def validate_status(cls, value):
        return _check_status(value)

    @field_validator("scheduled_time")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class ScheduleSlotUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    contact_id: Optional[int] = Field(None, gt=0)
    contact_name: Optional[str] = Field(None, min_length=1, max_length=200)
    priority_label: Optional[str] = None
    contact_status: Optional[str] = None
    call_duration_mins: Optional[int] = Field(None, ge=1, le=240)
    scheduled_time: Optional[datetime] = None
    timezone_label: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @field_validator("priority_label")
    @classmethod
    def validate_label(cls, value):
        return _check_label(value)

    @field_validator("contact_status")
    @classmethod
    def validate_status(cls, value):
        return _check_status(value)

    @field_validator("scheduled_time")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class ReorderScheduleSchema(BaseModel):
    slot_ids: list[int]


class SlotCompleteSchema(BaseModel):
    completed: bool = True
