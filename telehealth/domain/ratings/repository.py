"""Rating repository - Database operations for doctor ratings"""

from typing import Optional

from sqlalchemy import and_, func, or_, update
from sqlalchemy.orm import Query, Session, joinedload

from ...models import DoctorRating, User


class RatingRepository:
    """Repository for rating database operations"""

    @staticmethod
    def get_doctor(db: Session, doctor_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == doctor_id, User.role == "DOCTOR").first()

    @staticmethod
    def get_rating(db: Session, rating_id: str) -> Optional[DoctorRating]:
        return db.query(DoctorRating).filter(DoctorRating.id == rating_id).first()

    @staticmethod
    def find_existing(db: Session, doctor_id: str, patient_id: str) -> Optional[DoctorRating]:
        return (
            db.query(DoctorRating)
            .filter(DoctorRating.doctor_id == doctor_id, DoctorRating.patient_id == patient_id)
            .first()
        )

    @staticmethod
    def create_rating(db: Session, doctor_id: str, patient_id: str, rating: int, review: Optional[str]) -> DoctorRating:
        row = DoctorRating(doctor_id=doctor_id, patient_id=patient_id, rating=rating, review=review)
        db.add(row)
        return row

    @staticmethod
    def apply_incremental_average(db: Session, doctor_id: str, rating: int) -> None:
        """
        Fold one new rating into the doctor's running mean in a single UPDATE:
        avg' = (avg * count + r) / (count + 1)
        """
        count = func.coalesce(User.rating_count, 0)
        average = func.coalesce(User.average_rating, 0)
        db.execute(
            update(User)
            .where(User.id == doctor_id)
            .values(
                rating_count=count + 1,
                average_rating=(average * count + float(rating)) / (count + 1),
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def recompute_aggregate(db: Session, doctor_id: str) -> None:
        """Rebuild the doctor's average and count from the stored ratings"""
        average, count = (
            db.query(func.avg(DoctorRating.rating), func.count(DoctorRating.id))
            .filter(DoctorRating.doctor_id == doctor_id)
            .one()
        )
        db.execute(
            update(User)
            .where(User.id == doctor_id)
            .values(
                average_rating=float(average) if count else None,
                rating_count=count,
            )
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def doctor_ratings_query(db: Session, doctor_id: str) -> Query:
        return (
            db.query(DoctorRating)
            .options(joinedload(DoctorRating.patient))
            .filter(DoctorRating.doctor_id == doctor_id)
            .order_by(DoctorRating.created_at.desc())
        )

    @staticmethod
    def doctors_for_patient_query(db: Session, patient_id: str, search: Optional[str] = None) -> Query:
        """Doctors joined with the given patient's own rating of each, if any"""
        query = (
            db.query(User, DoctorRating.rating)
            .outerjoin(
                DoctorRating,
                and_(DoctorRating.doctor_id == User.id, DoctorRating.patient_id == patient_id),
            )
            .filter(User.role == "DOCTOR")
        )
        if search and search.strip():
            term = f"%{search.strip().lower()}%"
            query = query.filter(
                or_(func.lower(User.name).like(term), func.lower(User.specialty).like(term))
            )
        return query.order_by(User.name.asc())

    @staticmethod
    def ratings_for_doctor(db: Session, doctor_id: str) -> list[int]:
        return [
            r for (r,) in db.query(DoctorRating.rating).filter(DoctorRating.doctor_id == doctor_id).all()
        ]
