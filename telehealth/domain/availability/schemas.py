"""Availability domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ...shared.pagination import Pagination
from ...shared.validators import naive_utc


class _Interval(BaseModel):
    startTime: datetime
    endTime: datetime

    @field_validator("startTime", "endTime")
    @classmethod
    def to_utc(cls, v):
        return naive_utc(v)

    @model_validator(mode="after")
    def check_interval(self):
        if self.endTime <= self.startTime:
            raise ValueError("endTime must be after startTime")
        return self


class AvailabilityCreate(_Interval):
    """Schema for publishing a bookable slot"""


class TimeOffCreate(_Interval):
    reason: Optional[str] = Field(None, max_length=500)


class SlotResponse(BaseModel):
    id: str
    doctorId: str
    startTime: datetime
    endTime: datetime
    isBooked: bool
    timezone: Optional[str] = None


class DoctorSlotResponse(SlotResponse):
    isDisabled: bool


class DirectorySlotResponse(SlotResponse):
    doctorName: str
    specialty: Optional[str] = None
    averageRating: Optional[float] = None


class SlotListResponse(BaseModel):
    items: list[SlotResponse]
    pagination: Pagination


class DirectorySlotListResponse(BaseModel):
    items: list[DirectorySlotResponse]
    pagination: Pagination


class TimeOffResponse(BaseModel):
    id: str
    doctorId: str
    startTime: datetime
    endTime: datetime
    reason: Optional[str] = None
