"""Prescription repository - Database operations for prescriptions"""

from typing import Optional

from sqlalchemy.orm import Query, Session, joinedload

from ...models import DoctorPatient, Prescription


class PrescriptionRepository:
    """Repository for prescription database operations"""

    @staticmethod
    def has_link(db: Session, doctor_id: str, patient_id: str) -> bool:
        return (
            db.query(DoctorPatient.id)
            .filter(DoctorPatient.doctor_id == doctor_id, DoctorPatient.patient_id == patient_id)
            .first()
            is not None
        )

    @staticmethod
    def create(db: Session, **data) -> Prescription:
        prescription = Prescription(**data)
        db.add(prescription)
        return prescription

    @staticmethod
    def get_owned(db: Session, prescription_id: str, doctor_id: str) -> Optional[Prescription]:
        return (
            db.query(Prescription)
            .filter(
                Prescription.id == prescription_id,
                Prescription.doctor_id == doctor_id,
                Prescription.active(),
            )
            .first()
        )

    @staticmethod
    def list_query(
        db: Session, doctor_id: Optional[str] = None, patient_id: Optional[str] = None
    ) -> Query:
        query = (
            db.query(Prescription)
            .options(joinedload(Prescription.doctor), joinedload(Prescription.patient))
            .filter(Prescription.active())
        )
        if doctor_id:
            query = query.filter(Prescription.doctor_id == doctor_id)
        if patient_id:
            query = query.filter(Prescription.patient_id == patient_id)
        return query.order_by(Prescription.created_at.desc())
