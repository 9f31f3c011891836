"""Prescription schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from ...shared.pagination import Pagination


class PrescriptionCreate(BaseModel):
    patientId: str
    imageUrl: str = Field(..., min_length=1)
    title: Optional[str] = Field(None, max_length=255)
    note: Optional[str] = Field(None, max_length=2000)


class PrescriptionResponse(BaseModel):
    id: str
    doctorId: str
    patientId: str
    doctorName: Optional[str] = None
    patientName: Optional[str] = None
    title: Optional[str] = None
    note: Optional[str] = None
    imageUrl: str
    createdAt: Optional[datetime] = None


class PrescriptionListResponse(BaseModel):
    items: list[PrescriptionResponse]
    pagination: Pagination
