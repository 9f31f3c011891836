"""Appointment repository - Database operations for appointments"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Query, Session, joinedload, selectinload

from ...models import (
    Appointment,
    AppointmentMeeting,
    AppointmentReschedule,
    DoctorPatient,
    User,
)


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id, Appointment.active())
            .first()
        )

    @staticmethod
    def get_appointment_detail(db: Session, appointment_id: str) -> Optional[Appointment]:
        """Appointment with its participants, meeting, reschedules and events"""
        return (
            db.query(Appointment)
            .options(
                joinedload(Appointment.doctor),
                joinedload(Appointment.patient),
                joinedload(Appointment.meeting),
                selectinload(Appointment.reschedules),
                selectinload(Appointment.events),
            )
            .filter(Appointment.id == appointment_id, Appointment.active())
            .first()
        )

    @staticmethod
    def create_appointment(db: Session, **data) -> Appointment:
        appointment = Appointment(created_at=datetime.utcnow(), **data)
        db.add(appointment)
        db.flush()
        return appointment

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    # Meetings
    @staticmethod
    def get_meeting(db: Session, appointment_id: str) -> Optional[AppointmentMeeting]:
        return (
            db.query(AppointmentMeeting)
            .filter(AppointmentMeeting.appointment_id == appointment_id)
            .first()
        )

    @staticmethod
    def upsert_meeting(
        db: Session, appointment_id: str, meet_link: str, calendar_event_id: Optional[str]
    ) -> AppointmentMeeting:
        meeting = AppointmentRepository.get_meeting(db, appointment_id)
        if meeting:
            meeting.meet_link = meet_link
            meeting.calendar_event_id = calendar_event_id or meeting.calendar_event_id
        else:
            meeting = AppointmentMeeting(
                appointment_id=appointment_id,
                meet_link=meet_link,
                calendar_event_id=calendar_event_id,
            )
            db.add(meeting)
        return meeting

    # Reschedules
    @staticmethod
    def get_reschedule(db: Session, reschedule_id: str) -> Optional[AppointmentReschedule]:
        return (
            db.query(AppointmentReschedule)
            .filter(AppointmentReschedule.id == reschedule_id)
            .first()
        )

    @staticmethod
    def create_reschedule(
        db: Session,
        appointment_id: str,
        old_availability_id: str,
        new_availability_id: str,
        requested_by: str,
    ) -> AppointmentReschedule:
        reschedule = AppointmentReschedule(
            appointment_id=appointment_id,
            old_availability_id=old_availability_id,
            new_availability_id=new_availability_id,
            requested_by=requested_by,
            status="REQUESTED",
            created_at=datetime.utcnow(),
        )
        db.add(reschedule)
        return reschedule

    @staticmethod
    def get_reschedules_for(db: Session, appointment_ids: list[str]) -> list[AppointmentReschedule]:
        if not appointment_ids:
            return []
        return (
            db.query(AppointmentReschedule)
            .filter(AppointmentReschedule.appointment_id.in_(appointment_ids))
            .order_by(AppointmentReschedule.created_at.asc())
            .all()
        )

    # Listing
    @staticmethod
    def list_query(
        db: Session,
        doctor_id: Optional[str] = None,
        patient_id: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Query:
        query = db.query(Appointment).options(
            joinedload(Appointment.doctor),
            joinedload(Appointment.patient),
            joinedload(Appointment.meeting),
        )
        query = query.filter(Appointment.active())
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if patient_id:
            query = query.filter(Appointment.patient_id == patient_id)
        if status and status != "ALL":
            query = query.filter(Appointment.status == status)
        return query.order_by(Appointment.created_at.desc())

    # Doctor-patient relationship
    @staticmethod
    def ensure_doctor_patient_link(db: Session, doctor_id: str, patient_id: str) -> bool:
        """Create the link if missing; returns True when a new link was added"""
        existing = (
            db.query(DoctorPatient)
            .filter(DoctorPatient.doctor_id == doctor_id, DoctorPatient.patient_id == patient_id)
            .first()
        )
        if existing:
            return False
        db.add(DoctorPatient(doctor_id=doctor_id, patient_id=patient_id))
        return True
