"""Medical records schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.pagination import Pagination
from ...shared.validators import naive_utc

LabStatus = Literal["normal", "abnormal", "critical"]
HistoryStatus = Literal["ongoing", "resolved", "seasonal"]


class _Dates(BaseModel):
    @field_validator("date", "startDate", "endDate", mode="after", check_fields=False)
    @classmethod
    def to_utc(cls, v):
        return naive_utc(v)


def reject_null(v):
    """Omitting a field leaves it unchanged; an explicit null is not allowed"""
    if v is None:
        raise ValueError("Field cannot be null")
    return v


# ============================================================================
# LAB REPORTS
# ============================================================================


class LabReportCreate(_Dates):
    patientId: str
    name: str = Field(..., min_length=1)
    date: datetime
    status: LabStatus = "normal"
    notes: Optional[str] = None
    fileUrl: Optional[str] = None


class LabReportUpdate(_Dates):
    name: Optional[str] = Field(None, min_length=1)
    date: Optional[datetime] = None
    status: Optional[LabStatus] = None
    notes: Optional[str] = None
    fileUrl: Optional[str] = None

    required_not_null = field_validator("name", "date", "status")(reject_null)


class LabReportResponse(BaseModel):
    id: str
    doctorId: str
    patientId: str
    name: str
    date: datetime
    status: str
    notes: Optional[str] = None
    fileUrl: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


# ============================================================================
# MEDICAL HISTORY
# ============================================================================


class MedicalHistoryCreate(_Dates):
    patientId: str
    condition: str = Field(..., min_length=1)
    status: HistoryStatus = "ongoing"
    startDate: datetime
    endDate: Optional[datetime] = None
    notes: Optional[str] = None


class MedicalHistoryUpdate(_Dates):
    condition: Optional[str] = Field(None, min_length=1)
    status: Optional[HistoryStatus] = None
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    notes: Optional[str] = None

    required_not_null = field_validator("condition", "status", "startDate")(reject_null)


class MedicalHistoryResponse(BaseModel):
    id: str
    doctorId: str
    patientId: str
    condition: str
    status: str
    startDate: datetime
    endDate: Optional[datetime] = None
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


# ============================================================================
# MEDICATIONS
# ============================================================================


class MedicationCreate(_Dates):
    patientId: str
    name: str = Field(..., min_length=1)
    dosage: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1)
    startDate: datetime
    endDate: Optional[datetime] = None
    adherence: int = Field(0, ge=0, le=100)
    sideEffects: Optional[str] = None
    effectivenessRating: int = Field(0, ge=0, le=5)
    notes: Optional[str] = None


class MedicationUpdate(_Dates):
    name: Optional[str] = Field(None, min_length=1)
    dosage: Optional[str] = Field(None, min_length=1)
    reason: Optional[str] = Field(None, min_length=1)
    startDate: Optional[datetime] = None
    endDate: Optional[datetime] = None
    adherence: Optional[int] = Field(None, ge=0, le=100)
    sideEffects: Optional[str] = None
    effectivenessRating: Optional[int] = Field(None, ge=0, le=5)
    notes: Optional[str] = None

    required_not_null = field_validator(
        "name", "dosage", "reason", "startDate", "adherence", "effectivenessRating"
    )(reject_null)


class MedicationResponse(BaseModel):
    id: str
    doctorId: str
    patientId: str
    name: str
    dosage: str
    reason: str
    startDate: datetime
    endDate: Optional[datetime] = None
    adherence: Optional[int] = None
    sideEffects: Optional[str] = None
    effectivenessRating: Optional[int] = None
    notes: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None


class ProgressCreate(_Dates):
    date: datetime
    note: str = Field(..., min_length=1)


class ProgressResponse(BaseModel):
    id: str
    medicationId: str
    date: datetime
    note: str
    createdAt: Optional[datetime] = None


# ============================================================================
# LIST ENVELOPES
# ============================================================================


class LabReportListResponse(BaseModel):
    items: list[LabReportResponse]
    pagination: Pagination


class MedicalHistoryListResponse(BaseModel):
    items: list[MedicalHistoryResponse]
    pagination: Pagination


class MedicationListResponse(BaseModel):
    items: list[MedicationResponse]
    pagination: Pagination


class ProgressListResponse(BaseModel):
    items: list[ProgressResponse]
