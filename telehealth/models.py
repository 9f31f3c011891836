import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .lifecycle import SoftDeleteMixin


def generate_id():
    """Generate a UUID primary key"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    firebase_uid = Column(String(255), unique=True, index=True, nullable=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    role = Column(String(16), default="PATIENT", nullable=False)  # PATIENT, DOCTOR, ADMIN
    specialty = Column(String(255), nullable=True)
    license_number = Column(String(100), nullable=True)
    bio = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    location = Column(String(255), nullable=True)
    gender = Column(String(20), nullable=True)  # male, female
    date_of_birth = Column(DateTime, nullable=True)
    image = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    has_onboarded = Column(Boolean, default=False, nullable=False)
    # Running aggregate maintained by the rating service
    average_rating = Column(Float, nullable=True)
    rating_count = Column(Integer, default=0, nullable=False)
    last_seen = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class DoctorPatient(Base):
    """Link granting a doctor visibility into a patient's records"""

    __tablename__ = "doctor_patients"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])


class DoctorRating(Base):
    __tablename__ = "doctor_ratings"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5
    review = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])


class DoctorAvailability(Base):
    __tablename__ = "doctor_availability"
    __table_args__ = (Index("doctor_availability_time_idx", "start_time", "end_time"),)

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    is_booked = Column(Boolean, default=False, nullable=False)
    timezone = Column(String(50), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    doctor = relationship("User")


class DoctorTimeOff(Base):
    __tablename__ = "doctor_time_off"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Appointment(SoftDeleteMixin, Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=generate_id)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    availability_id = Column(
        String(36), ForeignKey("doctor_availability.id", ondelete="RESTRICT"), nullable=False
    )
    appointment_type = Column(String(20), nullable=False)  # VIDEO, IN_PERSON, CHAT, VOICE
    # PENDING, CONFIRMED, COMPLETED, CANCELED, NO_SHOW
    status = Column(String(20), default="PENDING", nullable=False, index=True)
    reason = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    # Snapshot of the booked slot's interval
    scheduled_start = Column(DateTime, nullable=False)
    scheduled_end = Column(DateTime, nullable=False)

    completed_at = Column(DateTime, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)
    cancelled_by = Column(String(16), nullable=True)  # role of the cancelling actor

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    patient = relationship("User", foreign_keys=[patient_id])
    doctor = relationship("User", foreign_keys=[doctor_id])
    availability = relationship("DoctorAvailability")
    meeting = relationship("AppointmentMeeting", uselist=False, back_populates="appointment")
    events = relationship(
        "AppointmentEvent",
        back_populates="appointment",
        order_by="AppointmentEvent.created_at.desc()",
    )
    reschedules = relationship("AppointmentReschedule", back_populates="appointment")


class AppointmentEvent(Base):
    """Append-only audit trail of appointment transitions"""

    __tablename__ = "appointment_events"

    id = Column(String(36), primary_key=True, default=generate_id)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_status = Column(String(20), nullable=True)
    new_status = Column(String(20), nullable=False)
    changed_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    actor_role = Column(String(16), nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="events")


class AppointmentReschedule(Base):
    __tablename__ = "appointment_reschedules"

    id = Column(String(36), primary_key=True, default=generate_id)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_availability_id = Column(String(36), ForeignKey("doctor_availability.id"), nullable=True)
    new_availability_id = Column(String(36), ForeignKey("doctor_availability.id"), nullable=True)
    requested_by = Column(String(36), ForeignKey("users.id"), nullable=False)
    status = Column(String(20), default="REQUESTED", nullable=False)  # REQUESTED, APPROVED
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="reschedules")


class AppointmentMeeting(Base):
    __tablename__ = "appointment_meetings"

    id = Column(String(36), primary_key=True, default=generate_id)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=True, unique=True
    )
    meet_link = Column(Text, nullable=False)
    calendar_event_id = Column(String(255), nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    appointment = relationship("Appointment", back_populates="meeting")


class Notification(Base):
    """Record of an email/SMS/push attempt"""

    __tablename__ = "notifications"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    appointment_id = Column(
        String(36), ForeignKey("appointments.id", ondelete="CASCADE"), nullable=True
    )
    type = Column(String(30), nullable=False)  # EMAIL, SMS, PUSH
    title = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), default="PENDING")  # PENDING, SENT, FAILED
    error = Column(Text, nullable=True)
    sent_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())


class Prescription(SoftDeleteMixin, Base):
    __tablename__ = "prescriptions"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(Text, nullable=True)
    note = Column(Text, nullable=True)
    image_url = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    doctor = relationship("User", foreign_keys=[doctor_id])
    patient = relationship("User", foreign_keys=[patient_id])
