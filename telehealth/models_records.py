"""
Medical Records Models
Doctor-authored, patient-scoped records
"""
from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base
from .lifecycle import SoftDeleteMixin
from .models import generate_id


class LabReport(SoftDeleteMixin, Base):
    __tablename__ = "lab_reports"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    date = Column(DateTime, nullable=False)
    status = Column(String(20), default="normal")  # normal, abnormal, critical
    notes = Column(Text, nullable=True)
    file_url = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class MedicalHistory(SoftDeleteMixin, Base):
    __tablename__ = "medical_history"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    condition = Column(Text, nullable=False)
    status = Column(String(20), default="ongoing")  # ongoing, resolved, seasonal
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Medication(SoftDeleteMixin, Base):
    __tablename__ = "medications"

    id = Column(String(36), primary_key=True, default=generate_id)
    doctor_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    patient_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(Text, nullable=False)
    dosage = Column(Text, nullable=False)
    reason = Column(Text, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=True)
    adherence = Column(Integer, default=0)  # percent, 0-100
    side_effects = Column(Text, nullable=True)
    effectiveness_rating = Column(Integer, default=0)  # 0-5
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    progress = relationship("MedicationProgress", back_populates="medication")


class MedicationProgress(Base):
    __tablename__ = "medication_progress"

    id = Column(String(36), primary_key=True, default=generate_id)
    medication_id = Column(
        String(36), ForeignKey("medications.id", ondelete="CASCADE"), nullable=False, index=True
    )
    date = Column(DateTime, nullable=False)
    note = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    medication = relationship("Medication", back_populates="progress")
