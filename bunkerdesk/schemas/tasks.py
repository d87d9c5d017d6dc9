"""
Pydantic validation schemas for follow-up tasks.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator
from bunkerdesk.constants import TASK_TYPE_OPTIONS
from bunkerdesk.schemas.common import naive_utc


class TaskCreateSchema(BaseModel):
    """Schema for creating a task via POST /api/tasks"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    title: str = Field(..., min_length=1, max_length=255)
    task_type: str = Field("other")
    contact_id: Optional[int] = Field(None, gt=0)
    supplier_id: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None
    due_date: Optional[datetime] = None

    @field_validator("task_type")
    @classmethod
    def validate_task_type(cls, value: str) -> str:
        if value not in TASK_TYPE_OPTIONS:
            raise ValueError(f"task_type must be one of: {', '.join(TASK_TYPE_OPTIONS)}")
        return value

    @field_validator("due_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)


class TaskUpdateSchema(BaseModel):
    """Schema for updating a task via PUT /api/tasks/{id}"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    title: Optional[str] = Field(None, min_length=1, max_length=255)
    task_type: Optional[str] = None
    contact_id: Optional[int] = Field(None, gt=0)
    supplier_id: Optional[int] = Field(None, gt=0)
    notes: Optional[str] = None
    due_date: Optional[datetime] = None
    completed: Optional[bool] = None

    @field_validator("task_type")
    @classmethod
    def validate_task_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if value not in TASK_TYPE_OPTIONS:
            raise ValueError(f"task_type must be one of: {', '.join(TASK_TYPE_OPTIONS)}")
        return value

    @field_validator("due_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)
