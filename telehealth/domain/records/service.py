"""Medical records service - Lab reports, medical history and medications"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from pydantic import BaseModel
from sqlalchemy.orm import Session

from ...models_records import LabReport, MedicalHistory, Medication, MedicationProgress
from ...policy import Caller, authorize
from ...shared.pagination import paginate
from ...utils.sanitization import blank_to_none
from .repository import RecordsRepository
from .schemas import ProgressCreate

logger = logging.getLogger(__name__)

# Free text that is trimmed and stored as NULL when blank
TEXT_FIELDS = {"notes", "sideEffects"}


@dataclass(frozen=True)
class RecordKind:
    model: type
    label: str
    # request/response field name -> column name
    fields: dict


LAB_REPORT = RecordKind(
    model=LabReport,
    label="Lab report",
    fields={
        "name": "name",
        "date": "date",
        "status": "status",
        "notes": "notes",
        "fileUrl": "file_url",
    },
)

MEDICAL_HISTORY = RecordKind(
    model=MedicalHistory,
    label="Medical history entry",
    fields={
        "condition": "condition",
        "status": "status",
        "startDate": "start_date",
        "endDate": "end_date",
        "notes": "notes",
    },
)

MEDICATION = RecordKind(
    model=Medication,
    label="Medication",
    fields={
        "name": "name",
        "dosage": "dosage",
        "reason": "reason",
        "startDate": "start_date",
        "endDate": "end_date",
        "adherence": "adherence",
        "sideEffects": "side_effects",
        "effectivenessRating": "effectiveness_rating",
        "notes": "notes",
    },
)


def clean_field(field: str, value):
    return blank_to_none(value) if field in TEXT_FIELDS else value


def serialize_record(kind: RecordKind, record) -> dict:
    data = {"id": record.id, "doctorId": record.doctor_id, "patientId": record.patient_id}
    for field, column in kind.fields.items():
        data[field] = getattr(record, column)
    data["createdAt"] = record.created_at
    data["updatedAt"] = record.updated_at
    return data


def serialize_progress(progress: MedicationProgress) -> dict:
    return {
        "id": progress.id,
        "medicationId": progress.medication_id,
        "date": progress.date,
        "note": progress.note,
        "createdAt": progress.created_at,
    }


class MedicalRecordsService:
    """Service layer for doctor-authored patient records"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = RecordsRepository()

    def _require_link(self, caller: Caller, patient_id: str) -> None:
        if not self.repo.has_link(self.db, caller.id, patient_id):
            raise HTTPException(status_code=403, detail="Patient is not linked to this doctor")

    def _owned(self, caller: Caller, kind: RecordKind, record_id: str):
        record = self.repo.get_owned(self.db, kind.model, record_id, caller.id)
        if not record:
            raise HTTPException(status_code=404, detail=f"{kind.label} not found")
        return record

    def create(self, caller: Caller, kind: RecordKind, data: BaseModel) -> dict:
        authorize(caller, "records.write")
        self._require_link(caller, data.patientId)

        now = datetime.utcnow()
        values = {column: clean_field(field, getattr(data, field)) for field, column in kind.fields.items()}
        try:
            record = self.repo.create(
                self.db,
                kind.model,
                doctor_id=caller.id,
                patient_id=data.patientId,
                created_at=now,
                updated_at=now,
                **values,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(record)
        logger.info(f"📋 {kind.label} {record.id} created by doctor {caller.id} for patient {data.patientId}")
        return serialize_record(kind, record)

    def update(self, caller: Caller, kind: RecordKind, record_id: str, data: BaseModel) -> dict:
        """Apply only the fields present in the request body"""
        authorize(caller, "records.write")
        record = self._owned(caller, kind, record_id)

        try:
            for field, value in data.model_dump(exclude_unset=True).items():
                setattr(record, kind.fields[field], clean_field(field, value))
            record.updated_at = datetime.utcnow()
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(record)
        logger.info(f"✏️ {kind.label} {record_id} updated by doctor {caller.id}")
        return serialize_record(kind, record)

    def delete(self, caller: Caller, kind: RecordKind, record_id: str) -> dict:
        authorize(caller, "records.write")
        record = self._owned(caller, kind, record_id)

        try:
            record.soft_delete(datetime.utcnow())
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ {kind.label} {record_id} deleted by doctor {caller.id}")
        return {"success": True}

    def list_records(
        self,
        caller: Caller,
        kind: RecordKind,
        patient_id: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> dict:
        """
        Records visible to the caller, newest first.

        Patients only ever see their own records. A doctor sees what they
        authored, or every record of one linked patient when ``patient_id``
        is given. Admins see everything, optionally narrowed to a patient.
        """
        if caller.is_patient:
            query = self.repo.list_query(self.db, kind.model, patient_id=caller.id)
        elif caller.is_doctor and patient_id:
            self._require_link(caller, patient_id)
            query = self.repo.list_query(self.db, kind.model, patient_id=patient_id)
        elif caller.is_doctor:
            query = self.repo.list_query(self.db, kind.model, doctor_id=caller.id)
        else:
            query = self.repo.list_query(self.db, kind.model, patient_id=patient_id)

        records, pagination = paginate(query, page, page_size)
        return {"items": [serialize_record(kind, r) for r in records], "pagination": pagination}

    # ========================================================================
    # MEDICATION PROGRESS
    # ========================================================================

    def _accessible_medication(self, caller: Caller, medication_id: str) -> Medication:
        medication = self.repo.get_medication(self.db, medication_id)
        if not medication:
            raise HTTPException(status_code=404, detail="Medication not found")
        if caller.is_patient and medication.patient_id != caller.id:
            raise HTTPException(status_code=403, detail="You do not have access to this medication")
        if caller.is_doctor and medication.doctor_id != caller.id:
            raise HTTPException(status_code=403, detail="You did not prescribe this medication")
        return medication

    def add_progress(self, caller: Caller, medication_id: str, data: ProgressCreate) -> dict:
        medication = self._accessible_medication(caller, medication_id)

        try:
            progress = self.repo.add_progress(self.db, medication.id, data.date, data.note)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(progress)
        logger.info(f"📈 Progress note added to medication {medication_id} by {caller.id}")
        return serialize_progress(progress)

    def list_progress(self, caller: Caller, medication_id: str) -> dict:
        medication = self._accessible_medication(caller, medication_id)
        return {"items": [serialize_progress(p) for p in self.repo.list_progress(self.db, medication.id)]}
