"""
Pydantic validation schemas for daily goals and goal notifications.
"""

from typing import Optional
from datetime import date
from pydantic import BaseModel, Field, ConfigDict, field_validator
from bunkerdesk.constants import GOAL_TYPE_OPTIONS
from bunkerdesk.utils.goal_progress import parse_hhmm


def _check_hhmm(value):
    if value is None or value == "":
        return None
    parsed = parse_hhmm(value)
    return parsed.strftime("%H:%M")


class GoalCreateSchema(BaseModel):
    """Schema for creating a goal via POST /api/goals"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    goal_type: str
    target_amount: int = Field(..., ge=1)
    start_time: Optional[str] = Field(None, description="HH:MM, defaults to midnight")
    target_time: str = Field(..., description="HH:MM deadline")
    target_date: date
    notes: Optional[str] = None

    @field_validator("goal_type")
    @classmethod
    def validate_goal_type(cls, value: str) -> str:
        if value not in GOAL_TYPE_OPTIONS:
            raise ValueError(f"goal_type must be one of: {', '.join(GOAL_TYPE_OPTIONS)}")
        return value

    @field_validator("start_time", "target_time")
    @classmethod
    def validate_times(cls, value: Optional[str]) -> Optional[str]:
        return _check_hhmm(value)


class GoalUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    goal_type: Optional[str] = None
    target_amount: Optional[int] = Field(None, ge=1)
    start_time: Optional[str] = None
    target_time: Optional[str] = None
    target_date: Optional[date] = None
    notes: Optional[str] = None

    @field_validator("goal_type")
    @classmethod
    def validate_goal_type(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return value
        if value not in GOAL_TYPE_OPTIONS:
            raise ValueError(f"goal_type must be one of: {', '.join(GOAL_TYPE_OPTIONS)}")
        return value

    @field_validator("start_time", "target_time")
    @classmethod
    def validate_times(cls, value: Optional[str]) -> Optional[str]:
        return _check_hhmm(value)


class ManualCountSchema(BaseModel):
    delta: int


class GoalNotificationSettingsSchema(BaseModel):
    notification_frequency: Optional[int] = Field(None, ge=1, description="Minutes between checks")
    enable_notifications: Optional[bool] = None
