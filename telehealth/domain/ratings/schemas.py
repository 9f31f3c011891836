"""Rating domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...shared.pagination import Pagination


class RatingCreate(BaseModel):
    doctorId: str
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)


class RatingEdit(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review: Optional[str] = Field(None, max_length=1000)


class RatingResponse(BaseModel):
    id: str
    doctorId: str
    patientId: str
    patientName: Optional[str] = None
    rating: int
    review: Optional[str] = None
    createdAt: Optional[datetime] = None


class RatingListResponse(BaseModel):
    items: list[RatingResponse]
    pagination: Pagination


class DoctorToRate(BaseModel):
    id: str
    name: str
    specialty: Optional[str] = None
    averageRating: float = 0
    ratingCount: int = 0
    patientRating: Optional[int] = None
    hasRated: bool


class DoctorToRateListResponse(BaseModel):
    items: list[DoctorToRate]
    pagination: Pagination


class AverageRatingResponse(BaseModel):
    doctorId: str
    average: Optional[float] = None
