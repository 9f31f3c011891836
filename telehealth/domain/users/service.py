"""User service - Profiles, directory lookups and admin user management"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import User
from ...policy import Caller, Role, authorize
from ...utils.sanitization import blank_to_none
from .repository import UserRepository
from .schemas import UserUpdate

logger = logging.getLogger(__name__)

# request field -> column
PROFILE_FIELDS = {
    "name": "name",
    "phone": "phone",
    "location": "location",
    "gender": "gender",
    "dateOfBirth": "date_of_birth",
    "bio": "bio",
    "specialty": "specialty",
    "licenseNumber": "license_number",
    "image": "image",
    "hasOnboarded": "has_onboarded",
}

# Free text that is trimmed and stored as NULL when blank
TEXT_FIELDS = {"phone", "location", "bio", "specialty", "licenseNumber"}


def serialize_user(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "specialty": user.specialty,
        "licenseNumber": user.license_number,
        "bio": user.bio,
        "phone": user.phone,
        "location": user.location,
        "gender": user.gender,
        "dateOfBirth": user.date_of_birth,
        "image": user.image,
        "isActive": user.is_active,
        "hasOnboarded": user.has_onboarded,
        "averageRating": user.average_rating,
        "ratingCount": user.rating_count or 0,
        "createdAt": user.created_at,
    }


def serialize_patient(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "image": user.image,
        "phone": user.phone,
        "gender": user.gender,
        "dateOfBirth": user.date_of_birth,
        "specialty": user.specialty,
    }


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    def _get_or_404(self, user_id: str) -> User:
        user = self.repo.get_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    # ========================================================================
    # PROFILE & DIRECTORY
    # ========================================================================

    def get_profile(self, caller: Caller) -> dict:
        return serialize_user(self._get_or_404(caller.id))

    def update_profile(self, caller: Caller, data: UserUpdate) -> dict:
        user = self._get_or_404(caller.id)

        try:
            for field, value in data.model_dump(exclude_unset=True).items():
                if field in TEXT_FIELDS:
                    value = blank_to_none(value)
                elif value is None and field in ("name", "hasOnboarded"):
                    continue
                setattr(user, PROFILE_FIELDS[field], value)
            user.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(f"👤 Profile updated for user {caller.id}")
        return serialize_user(user)

    def get_by_id(self, user_id: str) -> dict:
        return serialize_user(self._get_or_404(user_id))

    def list_doctors(self) -> list[dict]:
        return [serialize_user(u) for u in self.repo.list_by_role(self.db, Role.DOCTOR.value)]

    def search(self, query: str, role: Optional[str] = None) -> list[dict]:
        """Case-insensitive match on name, email or specialty; at most 10 users"""
        return [serialize_user(u) for u in self.repo.search(self.db, query, role)]

    def get_patients(self, caller: Caller) -> list[dict]:
        authorize(caller, "users.patients")
        return [serialize_patient(u) for u in self.repo.linked_patients(self.db, caller.id)]

    def get_patient_demographics(self, caller: Caller) -> list[dict]:
        authorize(caller, "users.patients", "Only doctors can view their patient demographics")
        return [
            {"location": location or "Unknown", "count": count}
            for location, count in self.repo.patient_locations(self.db, caller.id)
        ]

    # ========================================================================
    # ADMIN
    # ========================================================================

    def list_all(
        self, caller: Caller, limit: int = 50, offset: int = 0, role: Optional[str] = None
    ) -> list[dict]:
        authorize(caller, "users.admin")
        return [serialize_user(u) for u in self.repo.list_all(self.db, limit, offset, role)]

    def count_by_role(self, caller: Caller, role: str) -> int:
        authorize(caller, "users.admin")
        return self.repo.count_by_role(self.db, role)

    def deactivate(self, caller: Caller, user_id: str) -> dict:
        authorize(caller, "users.admin")
        user = self._get_or_404(user_id)

        try:
            user.is_active = False
            user.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(user)
        logger.info(f"🚫 User {user_id} deactivated by admin {caller.id}")
        return {"success": True, "user": serialize_user(user)}

    def delete(self, caller: Caller, user_id: str) -> dict:
        authorize(caller, "users.admin")

        try:
            deleted = self.repo.delete(self.db, user_id)
            if not deleted:
                raise HTTPException(status_code=404, detail="User not found")
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ User {user_id} deleted by admin {caller.id}")
        return {"success": True}

    def get_stats(self, caller: Caller) -> dict:
        authorize(caller, "users.admin")
        patients = self.repo.count_by_role(self.db, Role.PATIENT.value)
        doctors = self.repo.count_by_role(self.db, Role.DOCTOR.value)
        admins = self.repo.count_by_role(self.db, Role.ADMIN.value)
        return {
            "totalUsers": patients + doctors + admins,
            "patients": patients,
            "doctors": doctors,
            "admins": admins,
        }
