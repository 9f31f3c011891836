"""Medical records router - FastAPI endpoints for lab reports, history and medications"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from .schemas import (
    LabReportCreate,
    LabReportListResponse,
    LabReportResponse,
    LabReportUpdate,
    MedicalHistoryCreate,
    MedicalHistoryListResponse,
    MedicalHistoryResponse,
    MedicalHistoryUpdate,
    MedicationCreate,
    MedicationListResponse,
    MedicationResponse,
    MedicationUpdate,
    ProgressCreate,
    ProgressListResponse,
    ProgressResponse,
)
from .service import LAB_REPORT, MEDICAL_HISTORY, MEDICATION, MedicalRecordsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/medical-reports", tags=["Medical Records"])


def get_records_service(db: Session = Depends(get_db)) -> MedicalRecordsService:
    """Dependency injection for MedicalRecordsService"""
    return MedicalRecordsService(db)


# ============================================================================
# LAB REPORTS
# ============================================================================


@router.get("/lab-reports", response_model=LabReportListResponse)
async def list_lab_reports(
    patientId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.list_records(caller, LAB_REPORT, patientId, page, pageSize)


@router.post("/lab-reports", response_model=LabReportResponse)
async def create_lab_report(
    data: LabReportCreate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.create(caller, LAB_REPORT, data)


@router.put("/lab-reports/{record_id}", response_model=LabReportResponse)
async def update_lab_report(
    record_id: str,
    data: LabReportUpdate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.update(caller, LAB_REPORT, record_id, data)


@router.delete("/lab-reports/{record_id}")
async def delete_lab_report(
    record_id: str,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.delete(caller, LAB_REPORT, record_id)


# ============================================================================
# MEDICAL HISTORY
# ============================================================================


@router.get("/history", response_model=MedicalHistoryListResponse)
async def list_medical_history(
    patientId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.list_records(caller, MEDICAL_HISTORY, patientId, page, pageSize)


@router.post("/history", response_model=MedicalHistoryResponse)
async def create_medical_history(
    data: MedicalHistoryCreate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.create(caller, MEDICAL_HISTORY, data)


@router.put("/history/{record_id}", response_model=MedicalHistoryResponse)
async def update_medical_history(
    record_id: str,
    data: MedicalHistoryUpdate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.update(caller, MEDICAL_HISTORY, record_id, data)


@router.delete("/history/{record_id}")
async def delete_medical_history(
    record_id: str,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.delete(caller, MEDICAL_HISTORY, record_id)


# ============================================================================
# MEDICATIONS
# ============================================================================


@router.get("/medications", response_model=MedicationListResponse)
async def list_medications(
    patientId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.list_records(caller, MEDICATION, patientId, page, pageSize)


@router.post("/medications", response_model=MedicationResponse)
async def create_medication(
    data: MedicationCreate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.create(caller, MEDICATION, data)


@router.put("/medications/{record_id}", response_model=MedicationResponse)
async def update_medication(
    record_id: str,
    data: MedicationUpdate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.update(caller, MEDICATION, record_id, data)


@router.delete("/medications/{record_id}")
async def delete_medication(
    record_id: str,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.delete(caller, MEDICATION, record_id)


@router.get("/medications/{medication_id}/progress", response_model=ProgressListResponse)
async def list_medication_progress(
    medication_id: str,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.list_progress(caller, medication_id)


@router.post("/medications/{medication_id}/progress", response_model=ProgressResponse)
async def add_medication_progress(
    medication_id: str,
    data: ProgressCreate,
    caller: Caller = Depends(get_current_caller),
    service: MedicalRecordsService = Depends(get_records_service),
):
    return service.add_progress(caller, medication_id, data)
