"""Appointment router - FastAPI endpoints for the appointment lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from .schemas import (
    AppointmentDetailResponse,
    AppointmentListResponse,
    ApproveRescheduleRequest,
    BookAppointmentRequest,
    BookAppointmentResponse,
    CancelAppointmentRequest,
    ConfirmAppointmentRequest,
    ConfirmAppointmentResponse,
    MarkCompletedRequest,
    MarkNoShowRequest,
    RescheduleAppointmentRequest,
    RescheduleRequestedResponse,
    StatusFilter,
    SuccessResponse,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


@router.post("/book", response_model=BookAppointmentResponse)
async def book_appointment(
    data: BookAppointmentRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.book(caller, data)


@router.post("/confirm", response_model=ConfirmAppointmentResponse)
async def confirm_appointment(
    data: ConfirmAppointmentRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.confirm(caller, data.appointmentId)


@router.post("/cancel", response_model=SuccessResponse)
async def cancel_appointment(
    data: CancelAppointmentRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.cancel(caller, data)


@router.post("/reschedule", response_model=RescheduleRequestedResponse)
async def request_reschedule(
    data: RescheduleAppointmentRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.request_reschedule(caller, data)


@router.post("/approve-reschedule", response_model=SuccessResponse)
async def approve_reschedule(
    data: ApproveRescheduleRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return await service.approve_reschedule(caller, data.rescheduleId)


@router.post("/mark-completed", response_model=SuccessResponse)
async def mark_completed(
    data: MarkCompletedRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.mark_completed(caller, data.appointmentId, data.notes)


@router.post("/mark-no-show", response_model=SuccessResponse)
async def mark_no_show(
    data: MarkNoShowRequest,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.mark_no_show(caller, data.appointmentId)


@router.get("", response_model=AppointmentListResponse)
async def list_appointments(
    status: Optional[StatusFilter] = Query(None),
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments visible to the caller, newest first"""
    return service.list_appointments(caller, status, page, pageSize)


@router.get("/{appointment_id}", response_model=AppointmentDetailResponse)
async def get_appointment(
    appointment_id: str,
    caller: Caller = Depends(get_current_caller),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.get_by_id(caller, appointment_id)
