"""
Pydantic validation schemas for fuel deals.
"""

from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator, model_validator
from bunkerdesk.schemas.common import naive_utc
from bunkerdesk.schemas.tasks import TaskCreateSchema


class FuelDealCreateSchema(BaseModel):
    """Schema for recording a deal via POST /api/fuel-deals"""

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    contact_id: int = Field(..., gt=0)
    vessel_id: Optional[int] = Field(None, gt=0)
    vessel_name: Optional[str] = Field(None, max_length=150)
    fuel_quantity: float = Field(..., gt=0, description="Quantity in metric tonnes")
    fuel_type: str = Field(..., min_length=1, max_length=100)
    deal_date: datetime
    port: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = None
    follow_up_task: Optional[TaskCreateSchema] = None

    @field_validator("deal_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)

    @model_validator(mode="after")
    def require_vessel(self):
        if not self.vessel_name and not self.vessel_id:
            raise ValueError("vessel_name or vessel_id is required")
        return self


class FuelDealUpdateSchema(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    vessel_id: Optional[int] = Field(None, gt=0)
    vessel_name: Optional[str] = Field(None, min_length=1, max_length=150)
    fuel_quantity: Optional[float] = Field(None, gt=0)
    fuel_type: Optional[str] = Field(None, min_length=1, max_length=100)
    deal_date: Optional[datetime] = None
    port: Optional[str] = Field(None, min_length=1, max_length=100)
    notes: Optional[str] = None

    @field_validator("deal_date")
    @classmethod
    def to_utc(cls, value):
        return naive_utc(value)
