"""Availability service - Business logic for doctor slots and time off"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import DEFAULT_TIMEZONE
from ...models import DoctorAvailability, DoctorTimeOff
from ...policy import Caller, authorize
from ...shared.pagination import paginate
from ...shared.validators import naive_utc
from ...utils.sanitization import blank_to_none
from .repository import AvailabilityRepository
from .schemas import AvailabilityCreate, TimeOffCreate

logger = logging.getLogger(__name__)


def overlaps(start: datetime, end: datetime, other_start: datetime, other_end: datetime) -> bool:
    """Half-open interval overlap; touching endpoints do not overlap"""
    return not (end <= other_start or start >= other_end)


def serialize_slot(slot: DoctorAvailability) -> dict:
    return {
        "id": slot.id,
        "doctorId": slot.doctor_id,
        "startTime": slot.start_time,
        "endTime": slot.end_time,
        "isBooked": slot.is_booked,
        "timezone": slot.timezone,
    }


def serialize_time_off(time_off: DoctorTimeOff) -> dict:
    return {
        "id": time_off.id,
        "doctorId": time_off.doctor_id,
        "startTime": time_off.start_time,
        "endTime": time_off.end_time,
        "reason": time_off.reason,
    }


class AvailabilityService:
    """Service layer for availability business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AvailabilityRepository()

    def create(self, caller: Caller, data: AvailabilityCreate) -> dict:
        """Publish an unbooked slot for the calling doctor"""
        authorize(caller, "availability.create")
        # No overlap check against the doctor's existing slots
        slot = self.repo.create_slot(self.db, caller.id, data.startTime, data.endTime, DEFAULT_TIMEZONE)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(slot)
        logger.info(f"✅ Slot {slot.id} published for doctor {caller.id}")
        return serialize_slot(slot)

    def list_public(
        self,
        doctor_id: Optional[str] = None,
        is_booked: Optional[bool] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> dict:
        """
        Bookable slots, one page at a time, ordered by start time.

        When a doctor is given, slots that overlap one of their time-off windows
        are dropped from the page after it is fetched. ``pagination.total`` counts
        the filtered query before that exclusion, so it can exceed the number of
        slots actually reachable.
        """
        query = self.repo.public_query(
            self.db, doctor_id, is_booked, naive_utc(start_time), naive_utc(end_time)
        )
        slots, pagination = paginate(query, page, page_size)

        if doctor_id:
            time_offs = self.repo.get_time_offs(self.db, doctor_id)
            slots = [
                slot
                for slot in slots
                if all(
                    not overlaps(slot.start_time, slot.end_time, off.start_time, off.end_time)
                    for off in time_offs
                )
            ]

        return {"items": [serialize_slot(s) for s in slots], "pagination": pagination}

    def list_all(
        self,
        caller: Caller,
        is_booked: bool = False,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> dict:
        """Directory listing of slots with the doctor's name, specialty and rating"""
        query = self.repo.directory_query(self.db, bool(is_booked), search)
        rows, pagination = paginate(query, page, page_size)
        items = []
        for slot, doctor_name, specialty, average_rating in rows:
            item = serialize_slot(slot)
            item.update(
                {"doctorName": doctor_name, "specialty": specialty, "averageRating": average_rating}
            )
            items.append(item)
        return {"items": items, "pagination": pagination}

    def get_by_doctor(self, doctor_id: str) -> list[dict]:
        """Every slot of a doctor; booked or time-off-covered slots are disabled"""
        slots = self.repo.get_doctor_slots(self.db, doctor_id)
        time_offs = self.repo.get_time_offs(self.db, doctor_id)
        result = []
        for slot in slots:
            in_time_off = any(
                overlaps(slot.start_time, slot.end_time, off.start_time, off.end_time)
                for off in time_offs
            )
            item = serialize_slot(slot)
            item["isDisabled"] = slot.is_booked or in_time_off
            result.append(item)
        return result

    def delete(self, caller: Caller, slot_id: str) -> dict:
        """Delete a slot; a slot an appointment still references cannot be removed"""
        authorize(caller, "availability.delete")
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise HTTPException(status_code=404, detail="Doctor availability slot not found")

        try:
            self.repo.delete_slot(self.db, slot)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"⚠️ Slot {slot_id} is referenced by an appointment: {e.orig}")
            raise HTTPException(
                status_code=409, detail="Slot is referenced by an appointment and cannot be deleted"
            ) from e
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🗑️ Slot {slot_id} deleted by {caller.id}")
        return {"success": True}

    # ============================================================================
    # TIME OFF
    # ============================================================================

    def create_time_off(self, caller: Caller, data: TimeOffCreate) -> dict:
        authorize(caller, "availability.time_off")
        time_off = self.repo.create_time_off(
            self.db, caller.id, data.startTime, data.endTime, blank_to_none(data.reason)
        )
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        logger.info(f"🌴 Time off {time_off.id} added for doctor {caller.id}")
        return {"success": True, "id": time_off.id}

    def list_time_off(self, caller: Caller) -> list[dict]:
        """The caller's time off that has not yet ended, earliest first"""
        authorize(caller, "availability.time_off")
        time_offs = self.repo.get_upcoming_time_offs(self.db, caller.id, datetime.utcnow())
        return [serialize_time_off(t) for t in time_offs]

    def delete_time_off(self, caller: Caller, time_off_id: str) -> dict:
        authorize(caller, "availability.time_off")
        try:
            deleted = self.repo.delete_time_off(self.db, time_off_id, caller.id)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        if deleted:
            logger.info(f"🗑️ Time off {time_off_id} deleted by doctor {caller.id}")
        return {"success": True}
