"""Rating service - Business logic for doctor ratings and their aggregate"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import DoctorRating
from ...policy import Caller, authorize
from ...shared.pagination import paginate
from ...utils.sanitization import blank_to_none
from .repository import RatingRepository
from .schemas import RatingCreate, RatingEdit

logger = logging.getLogger(__name__)


def serialize_rating(rating: DoctorRating) -> dict:
    return {
        "id": rating.id,
        "doctorId": rating.doctor_id,
        "patientId": rating.patient_id,
        "patientName": rating.patient.name if rating.patient else None,
        "rating": rating.rating,
        "review": rating.review,
        "createdAt": rating.created_at,
    }


class RatingService:
    """Service layer for rating business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RatingRepository()

    def create(self, caller: Caller, data: RatingCreate) -> dict:
        """
        Record the caller's rating of a doctor and fold it into the doctor's
        running average. One rating per patient per doctor is checked by a
        lookup before the insert; there is no unique index behind it.
        """
        authorize(caller, "rating.create")

        try:
            if not self.repo.get_doctor(self.db, data.doctorId):
                raise HTTPException(status_code=404, detail="Doctor not found")

            if self.repo.find_existing(self.db, data.doctorId, caller.id):
                raise HTTPException(status_code=409, detail="You have already rated this doctor.")

            rating = self.repo.create_rating(
                self.db, data.doctorId, caller.id, data.rating, blank_to_none(data.review)
            )
            self.db.flush()
            self.repo.apply_incremental_average(self.db, data.doctorId, data.rating)
            rating_id = rating.id
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"⭐ Patient {caller.id} rated doctor {data.doctorId}: {data.rating}")
        return {"success": True, "id": rating_id}

    def list_ratings(self, doctor_id: str, page: int = 1, page_size: int = 10) -> dict:
        query = self.repo.doctor_ratings_query(self.db, doctor_id)
        ratings, pagination = paginate(query, page, page_size)
        return {"items": [serialize_rating(r) for r in ratings], "pagination": pagination}

    def list_for_patient(
        self, caller: Caller, search: Optional[str] = None, page: int = 1, page_size: int = 6
    ) -> dict:
        """Doctors the calling patient can rate, with their own rating if already given"""
        authorize(caller, "rating.list_for_patient")
        query = self.repo.doctors_for_patient_query(self.db, caller.id, search)
        rows, pagination = paginate(query, page, page_size)
        items = [
            {
                "id": doctor.id,
                "name": doctor.name,
                "specialty": doctor.specialty,
                "averageRating": doctor.average_rating or 0,
                "ratingCount": doctor.rating_count or 0,
                "patientRating": patient_rating,
                "hasRated": patient_rating is not None,
            }
            for doctor, patient_rating in rows
        ]
        return {"items": items, "pagination": pagination}

    def average(self, doctor_id: str) -> Optional[float]:
        """Arithmetic mean of the stored ratings, or None when there are none"""
        ratings = self.repo.ratings_for_doctor(self.db, doctor_id)
        if not ratings:
            return None
        return sum(ratings) / len(ratings)

    def edit(self, caller: Caller, rating_id: str, data: RatingEdit) -> dict:
        authorize(caller, "rating.edit")

        try:
            rating = self.repo.get_rating(self.db, rating_id)
            if not rating:
                raise HTTPException(status_code=404, detail="Rating not found")
            rating.rating = data.rating
            rating.review = blank_to_none(data.review)
            self.db.flush()
            self.repo.recompute_aggregate(self.db, rating.doctor_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✏️ Rating {rating_id} edited by admin {caller.id}")
        return {"success": True}

    def delete(self, caller: Caller, rating_id: str) -> dict:
        authorize(caller, "rating.delete")

        try:
            rating = self.repo.get_rating(self.db, rating_id)
            if not rating:
                raise HTTPException(status_code=404, detail="Rating not found")
            doctor_id = rating.doctor_id
            self.db.delete(rating)
            self.db.flush()
            self.repo.recompute_aggregate(self.db, doctor_id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Rating {rating_id} deleted by admin {caller.id}")
        return {"success": True}
