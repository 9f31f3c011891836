"""Availability router - FastAPI endpoints for doctor slots and time off"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from .schemas import (
    AvailabilityCreate,
    DirectorySlotListResponse,
    DoctorSlotResponse,
    SlotListResponse,
    SlotResponse,
    TimeOffCreate,
    TimeOffResponse,
)
from .service import AvailabilityService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/availability", tags=["Availability"])


def get_availability_service(db: Session = Depends(get_db)) -> AvailabilityService:
    """Dependency injection for AvailabilityService"""
    return AvailabilityService(db)


@router.post("", response_model=SlotResponse)
async def create_slot(
    data: AvailabilityCreate,
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Publish a bookable slot"""
    return service.create(caller, data)


@router.get("", response_model=DirectorySlotListResponse)
async def list_slots(
    isBooked: bool = Query(False),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.list_all(caller, isBooked, search, page, pageSize)


@router.get("/public", response_model=SlotListResponse)
async def list_public_slots(
    doctorId: Optional[str] = Query(None),
    isBooked: Optional[bool] = Query(None),
    startTime: Optional[datetime] = Query(None),
    endTime: Optional[datetime] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    """Slots a patient can browse, excluding the doctor's time off"""
    return service.list_public(doctorId, isBooked, startTime, endTime, page, pageSize)


@router.get("/doctor/{doctor_id}", response_model=list[DoctorSlotResponse])
async def get_doctor_slots(
    doctor_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.get_by_doctor(doctor_id)


# ============================================================================
# TIME OFF
# ============================================================================


@router.post("/time-off")
async def create_time_off(
    data: TimeOffCreate,
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.create_time_off(caller, data)


@router.get("/time-off", response_model=list[TimeOffResponse])
async def list_time_off(
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.list_time_off(caller)


@router.delete("/time-off/{time_off_id}")
async def delete_time_off(
    time_off_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.delete_time_off(caller, time_off_id)


@router.delete("/{slot_id}")
async def delete_slot(
    slot_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AvailabilityService = Depends(get_availability_service),
):
    return service.delete(caller, slot_id)
