"""Availability repository - Database operations for slots and time off"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func, update
from sqlalchemy.orm import Query, Session

from ...models import DoctorAvailability, DoctorTimeOff, User


class AvailabilityRepository:
    """Repository for availability database operations"""

    @staticmethod
    def get_slot(db: Session, slot_id: str) -> Optional[DoctorAvailability]:
        return db.query(DoctorAvailability).filter(DoctorAvailability.id == slot_id).first()

    @staticmethod
    def create_slot(db: Session, doctor_id: str, start: datetime, end: datetime, timezone: str) -> DoctorAvailability:
        slot = DoctorAvailability(
            doctor_id=doctor_id, start_time=start, end_time=end, is_booked=False, timezone=timezone
        )
        db.add(slot)
        return slot

    @staticmethod
    def public_query(
        db: Session,
        doctor_id: Optional[str] = None,
        is_booked: Optional[bool] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> Query:
        query = db.query(DoctorAvailability)
        if doctor_id:
            query = query.filter(DoctorAvailability.doctor_id == doctor_id)
        if is_booked is not None:
            query = query.filter(DoctorAvailability.is_booked == is_booked)
        if start_time:
            query = query.filter(DoctorAvailability.start_time >= start_time)
        if end_time:
            query = query.filter(DoctorAvailability.end_time <= end_time)
        return query.order_by(DoctorAvailability.start_time.asc())

    @staticmethod
    def directory_query(db: Session, is_booked: bool, search: Optional[str] = None) -> Query:
        """Slots joined with their doctor's name, specialty and rating"""
        query = (
            db.query(DoctorAvailability, User.name, User.specialty, User.average_rating)
            .join(User, DoctorAvailability.doctor_id == User.id)
            .filter(DoctorAvailability.is_booked == is_booked)
        )
        if search and search.strip():
            query = query.filter(func.lower(User.name).like(f"%{search.strip().lower()}%"))
        return query.order_by(DoctorAvailability.start_time.asc())

    @staticmethod
    def get_doctor_slots(db: Session, doctor_id: str) -> list[DoctorAvailability]:
        return (
            db.query(DoctorAvailability)
            .filter(DoctorAvailability.doctor_id == doctor_id)
            .order_by(DoctorAvailability.start_time.asc())
            .all()
        )

    @staticmethod
    def claim_slot(db: Session, slot_id: str) -> bool:
        """
        Mark a free slot booked. The WHERE clause only matches an unbooked row,
        so of two transactions racing for the same slot exactly one sees rowcount 1.
        """
        result = db.execute(
            update(DoctorAvailability)
            .where(DoctorAvailability.id == slot_id, DoctorAvailability.is_booked.is_(False))
            .values(is_booked=True)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    @staticmethod
    def release_slot(db: Session, slot_id: str) -> None:
        db.execute(
            update(DoctorAvailability)
            .where(DoctorAvailability.id == slot_id)
            .values(is_booked=False)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def delete_slot(db: Session, slot: DoctorAvailability) -> None:
        db.delete(slot)

    # Time off
    @staticmethod
    def get_time_offs(db: Session, doctor_id: str) -> list[DoctorTimeOff]:
        return db.query(DoctorTimeOff).filter(DoctorTimeOff.doctor_id == doctor_id).all()

    @staticmethod
    def get_upcoming_time_offs(db: Session, doctor_id: str, now: datetime) -> list[DoctorTimeOff]:
        return (
            db.query(DoctorTimeOff)
            .filter(DoctorTimeOff.doctor_id == doctor_id, DoctorTimeOff.end_time >= now)
            .order_by(DoctorTimeOff.start_time.asc())
            .all()
        )

    @staticmethod
    def create_time_off(
        db: Session, doctor_id: str, start: datetime, end: datetime, reason: Optional[str]
    ) -> DoctorTimeOff:
        time_off = DoctorTimeOff(doctor_id=doctor_id, start_time=start, end_time=end, reason=reason)
        db.add(time_off)
        return time_off

    @staticmethod
    def delete_time_off(db: Session, time_off_id: str, doctor_id: str) -> int:
        return (
            db.query(DoctorTimeOff)
            .filter(DoctorTimeOff.id == time_off_id, DoctorTimeOff.doctor_id == doctor_id)
            .delete(synchronize_session=False)
        )
