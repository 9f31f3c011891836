"""User schemas - Pydantic models for profiles and the user directory"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import naive_utc

RoleName = Literal["PATIENT", "DOCTOR", "ADMIN"]


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    location: Optional[str] = Field(None, max_length=255)
    gender: Optional[Literal["male", "female"]] = None
    dateOfBirth: Optional[datetime] = None
    bio: Optional[str] = Field(None, max_length=2000)
    specialty: Optional[str] = Field(None, max_length=255)
    licenseNumber: Optional[str] = Field(None, max_length=100)
    image: Optional[str] = Field(None, max_length=500)
    hasOnboarded: Optional[bool] = None

    @field_validator("dateOfBirth", mode="after")
    @classmethod
    def to_utc(cls, v):
        return naive_utc(v)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    role: str
    specialty: Optional[str] = None
    licenseNumber: Optional[str] = None
    bio: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[datetime] = None
    image: Optional[str] = None
    isActive: bool
    hasOnboarded: bool
    averageRating: Optional[float] = None
    ratingCount: int = 0
    createdAt: Optional[datetime] = None


class PatientSummary(BaseModel):
    id: str
    name: str
    email: str
    image: Optional[str] = None
    phone: Optional[str] = None
    gender: Optional[str] = None
    dateOfBirth: Optional[datetime] = None
    specialty: Optional[str] = None


class DemographicRow(BaseModel):
    location: str
    count: int


class UserStats(BaseModel):
    totalUsers: int
    patients: int
    doctors: int
    admins: int
