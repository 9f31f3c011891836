"""User router - FastAPI endpoints for profiles and user management"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_caller
from ...database import get_db
from ...policy import Caller
from .schemas import DemographicRow, PatientSummary, RoleName, UserResponse, UserStats, UserUpdate
from .service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


@router.get("/me", response_model=UserResponse)
async def get_profile(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    """Get current authenticated user"""
    return service.get_profile(caller)


@router.patch("/me", response_model=UserResponse)
async def update_profile(
    data: UserUpdate,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    """Update current user profile"""
    return service.update_profile(caller, data)


@router.get("/doctors", response_model=list[UserResponse])
async def list_doctors(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.list_doctors()


@router.get("/search", response_model=list[UserResponse])
async def search_users(
    query: str = Query(..., max_length=100),
    role: Optional[RoleName] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.search(query, role)


@router.get("/patients", response_model=list[PatientSummary])
async def get_patients(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.get_patients(caller)


@router.get("/patients/demographics", response_model=list[DemographicRow])
async def get_patient_demographics(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.get_patient_demographics(caller)


# ============================================================================
# ADMIN
# ============================================================================


@router.get("/admin/list", response_model=list[UserResponse])
async def list_all_users(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    role: Optional[RoleName] = Query(None),
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.list_all(caller, limit, offset, role)


@router.get("/admin/count")
async def count_users_by_role(
    role: RoleName = Query(...),
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return {"role": role, "count": service.count_by_role(caller, role)}


@router.get("/admin/stats", response_model=UserStats)
async def get_user_stats(
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.get_stats(caller)


@router.post("/{user_id}/deactivate")
async def deactivate_user(
    user_id: str,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.deactivate(caller, user_id)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: str,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.get_by_id(user_id)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    caller: Caller = Depends(get_current_caller),
    service: UserService = Depends(get_user_service),
):
    return service.delete(caller, user_id)
