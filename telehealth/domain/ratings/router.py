"""Rating router - FastAPI endpoints for doctor ratings"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from .schemas import (
    AverageRatingResponse,
    DoctorToRateListResponse,
    RatingCreate,
    RatingEdit,
    RatingListResponse,
)
from .service import RatingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ratings", tags=["Ratings"])


def get_rating_service(db: Session = Depends(get_db)) -> RatingService:
    """Dependency injection for RatingService"""
    return RatingService(db)


@router.post("")
async def create_rating(
    data: RatingCreate,
    caller: Caller = Depends(get_current_caller),
    service: RatingService = Depends(get_rating_service),
):
    return service.create(caller, data)


@router.get("/for-patient", response_model=DoctorToRateListResponse)
async def list_doctors_to_rate(
    search: Optional[str] = Query(None, max_length=100),
    page: int = Query(1, ge=1),
    pageSize: int = Query(6, ge=1, le=30),
    caller: Caller = Depends(get_current_caller),
    service: RatingService = Depends(get_rating_service),
):
    return service.list_for_patient(caller, search, page, pageSize)


# Public: no caller required
@router.get("/doctor/{doctor_id}", response_model=RatingListResponse)
async def list_ratings(
    doctor_id: str,
    page: int = Query(1, ge=1),
    pageSize: int = Query(10, ge=1, le=100),
    service: RatingService = Depends(get_rating_service),
):
    return service.list_ratings(doctor_id, page, pageSize)


@router.get("/doctor/{doctor_id}/average", response_model=AverageRatingResponse)
async def average_rating(
    doctor_id: str,
    service: RatingService = Depends(get_rating_service),
):
    return {"doctorId": doctor_id, "average": service.average(doctor_id)}


@router.put("/{rating_id}")
async def edit_rating(
    rating_id: str,
    data: RatingEdit,
    caller: Caller = Depends(get_current_caller),
    service: RatingService = Depends(get_rating_service),
):
    return service.edit(caller, rating_id, data)


@router.delete("/{rating_id}")
async def delete_rating(
    rating_id: str,
    caller: Caller = Depends(get_current_caller),
    service: RatingService = Depends(get_rating_service),
):
    return service.delete(caller, rating_id)
