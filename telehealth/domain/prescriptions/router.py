"""Prescription router - FastAPI endpoints for prescriptions"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from .schemas import PrescriptionCreate, PrescriptionListResponse, PrescriptionResponse
from .service import PrescriptionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/prescriptions", tags=["Prescriptions"])


def get_prescription_service(db: Session = Depends(get_db)) -> PrescriptionService:
    """Dependency injection for PrescriptionService"""
    return PrescriptionService(db)


@router.post("", response_model=PrescriptionResponse)
async def create_prescription(
    data: PrescriptionCreate,
    caller: Caller = Depends(get_current_caller),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.create(caller, data)


@router.get("/doctor", response_model=PrescriptionListResponse)
async def list_doctor_prescriptions(
    patientId: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.list_for_doctor(caller, patientId, page, pageSize)


@router.get("/patient", response_model=PrescriptionListResponse)
async def list_patient_prescriptions(
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.list_for_patient(caller, page, pageSize)


@router.delete("/{prescription_id}")
async def delete_prescription(
    prescription_id: str,
    caller: Caller = Depends(get_current_caller),
    service: PrescriptionService = Depends(get_prescription_service),
):
    return service.delete(caller, prescription_id)
