"""Medical records repository - Database operations for patient records"""

from typing import Optional

from sqlalchemy.orm import Query, Session

from ...models import DoctorPatient
from ...models_records import Medication, MedicationProgress


class RecordsRepository:
    """Repository shared by lab reports, medical history and medications"""

    @staticmethod
    def has_link(db: Session, doctor_id: str, patient_id: str) -> bool:
        return (
            db.query(DoctorPatient.id)
            .filter(DoctorPatient.doctor_id == doctor_id, DoctorPatient.patient_id == patient_id)
            .first()
            is not None
        )

    @staticmethod
    def create(db: Session, model, **data):
        record = model(**data)
        db.add(record)
        return record

    @staticmethod
    def get_owned(db: Session, model, record_id: str, doctor_id: str):
        """A non-deleted record authored by the doctor"""
        return (
            db.query(model)
            .filter(model.id == record_id, model.doctor_id == doctor_id, model.active())
            .first()
        )

    @staticmethod
    def list_query(
        db: Session, model, patient_id: Optional[str] = None, doctor_id: Optional[str] = None
    ) -> Query:
        query = db.query(model).filter(model.active())
        if patient_id:
            query = query.filter(model.patient_id == patient_id)
        if doctor_id:
            query = query.filter(model.doctor_id == doctor_id)
        return query.order_by(model.created_at.desc())

    # Medication progress
    @staticmethod
    def get_medication(db: Session, medication_id: str) -> Optional[Medication]:
        return (
            db.query(Medication)
            .filter(Medication.id == medication_id, Medication.active())
            .first()
        )

    @staticmethod
    def add_progress(db: Session, medication_id: str, date, note: str) -> MedicationProgress:
        progress = MedicationProgress(medication_id=medication_id, date=date, note=note)
        db.add(progress)
        return progress

    @staticmethod
    def list_progress(db: Session, medication_id: str) -> list[MedicationProgress]:
        return (
            db.query(MedicationProgress)
            .filter(MedicationProgress.medication_id == medication_id)
            .order_by(MedicationProgress.date.desc())
            .all()
        )
