"""User repository - Database operations for users and doctor-patient links"""

from typing import Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from ...models import DoctorPatient, User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def list_by_role(db: Session, role: str) -> list[User]:
        return db.query(User).filter(User.role == role).order_by(User.name).all()

    @staticmethod
    def search(db: Session, term: str, role: Optional[str] = None, limit: int = 10) -> list[User]:
        pattern = f"%{term.lower()}%"
        query = db.query(User).filter(
            or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(User.specialty).like(pattern),
            )
        )
        if role:
            query = query.filter(User.role == role)
        return query.limit(limit).all()

    @staticmethod
    def linked_patients(db: Session, doctor_id: str) -> list[User]:
        return (
            db.query(User)
            .join(DoctorPatient, DoctorPatient.patient_id == User.id)
            .filter(DoctorPatient.doctor_id == doctor_id)
            .order_by(User.name)
            .all()
        )

    @staticmethod
    def patient_locations(db: Session, doctor_id: str) -> list[tuple]:
        """(location, count) for the doctor's linked patients"""
        return (
            db.query(User.location, func.count(DoctorPatient.id))
            .select_from(DoctorPatient)
            .join(User, User.id == DoctorPatient.patient_id)
            .filter(DoctorPatient.doctor_id == doctor_id)
            .group_by(User.location)
            .all()
        )

    @staticmethod
    def list_all(db: Session, limit: int, offset: int, role: Optional[str] = None) -> list[User]:
        query = db.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.created_at.desc()).limit(limit).offset(offset).all()

    @staticmethod
    def count_by_role(db: Session, role: str) -> int:
        return db.query(func.count(User.id)).filter(User.role == role).scalar() or 0

    @staticmethod
    def delete(db: Session, user_id: str) -> int:
        return db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
