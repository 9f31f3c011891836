"""Prescription service - Doctor-issued prescriptions for linked patients"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Prescription
from ...policy import Caller, authorize
from ...shared.pagination import paginate
from ...utils.sanitization import blank_to_none
from .repository import PrescriptionRepository
from .schemas import PrescriptionCreate

logger = logging.getLogger(__name__)


def serialize_prescription(prescription: Prescription) -> dict:
    return {
        "id": prescription.id,
        "doctorId": prescription.doctor_id,
        "patientId": prescription.patient_id,
        "doctorName": prescription.doctor.name if prescription.doctor else None,
        "patientName": prescription.patient.name if prescription.patient else None,
        "title": prescription.title,
        "note": prescription.note,
        "imageUrl": prescription.image_url,
        "createdAt": prescription.created_at,
    }


class PrescriptionService:
    """Service layer for prescription business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PrescriptionRepository()

    def create(self, caller: Caller, data: PrescriptionCreate) -> dict:
        authorize(caller, "prescription.write")
        if not self.repo.has_link(self.db, caller.id, data.patientId):
            raise HTTPException(status_code=403, detail="Patient is not linked to this doctor")

        now = datetime.utcnow()
        try:
            prescription = self.repo.create(
                self.db,
                doctor_id=caller.id,
                patient_id=data.patientId,
                title=blank_to_none(data.title),
                note=blank_to_none(data.note),
                image_url=data.imageUrl,
                created_at=now,
                updated_at=now,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(prescription)
        logger.info(f"💊 Prescription {prescription.id} issued by doctor {caller.id} to {data.patientId}")
        return serialize_prescription(prescription)

    def list_for_doctor(
        self, caller: Caller, patient_id: Optional[str] = None, page: int = 1, page_size: int = 10
    ) -> dict:
        authorize(caller, "prescription.list_for_doctor")
        query = self.repo.list_query(self.db, doctor_id=caller.id, patient_id=patient_id)
        rows, pagination = paginate(query, page, page_size)
        return {"items": [serialize_prescription(p) for p in rows], "pagination": pagination}

    def list_for_patient(self, caller: Caller, page: int = 1, page_size: int = 10) -> dict:
        authorize(caller, "prescription.list_for_patient")
        query = self.repo.list_query(self.db, patient_id=caller.id)
        rows, pagination = paginate(query, page, page_size)
        return {"items": [serialize_prescription(p) for p in rows], "pagination": pagination}

    def delete(self, caller: Caller, prescription_id: str) -> dict:
        authorize(caller, "prescription.write")
        prescription = self.repo.get_owned(self.db, prescription_id, caller.id)
        if not prescription:
            raise HTTPException(status_code=404, detail="Prescription not found")

        try:
            prescription.soft_delete(datetime.utcnow())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Prescription {prescription_id} deleted by doctor {caller.id}")
        return {"success": True}
