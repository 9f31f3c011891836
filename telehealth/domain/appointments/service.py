"""
Appointment service - the appointment lifecycle

Every operation runs as one unit of work on the request's session: all writes
are staged, external calls (calendar, email) happen in between, and the session
is committed once at the end. Any exception rolls the whole operation back.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...email_service import (
    send_appointment_cancelled_to_patient,
    send_appointment_confirmed_to_patient,
    send_appointment_request_to_doctor,
)
from ...models import Appointment, AppointmentReschedule, User
from ...policy import Caller, Role, authorize
from ...services.google_calendar_service import (
    create_meet_event,
    extract_meet_link,
    get_integration,
    patch_event_times,
)
from ...services.notification_service import notify_user
from ...shared.pagination import paginate
from ..availability.repository import AvailabilityRepository
from .audit import record_event
from .repository import AppointmentRepository
from .schemas import (
    BookAppointmentRequest,
    CancelAppointmentRequest,
    RescheduleAppointmentRequest,
)
from .transitions import TERMINAL_STATUSES, AppointmentStatus, ensure_transition

logger = logging.getLogger(__name__)

SLOT_UNAVAILABLE = "Slot unavailable"


def _participant(user: Optional[User]) -> dict:
    if not user:
        return {"id": "", "name": ""}
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "specialty": user.specialty,
        "image": user.image,
    }


def serialize_reschedule(reschedule: AppointmentReschedule) -> dict:
    return {
        "id": reschedule.id,
        "oldAvailabilityId": reschedule.old_availability_id,
        "newAvailabilityId": reschedule.new_availability_id,
        "requestedBy": reschedule.requested_by,
        "status": reschedule.status,
        "createdAt": reschedule.created_at,
    }


def serialize_appointment_detail(appointment: Appointment) -> dict:
    meeting = appointment.meeting
    return {
        "id": appointment.id,
        "status": appointment.status,
        "reason": appointment.reason,
        "notes": appointment.notes,
        "appointmentType": appointment.appointment_type,
        "availabilityId": appointment.availability_id,
        "scheduledStart": appointment.scheduled_start,
        "scheduledEnd": appointment.scheduled_end,
        "completedAt": appointment.completed_at,
        "cancelledAt": appointment.cancelled_at,
        "cancelledBy": appointment.cancelled_by,
        "createdAt": appointment.created_at,
        "doctor": _participant(appointment.doctor),
        "patient": _participant(appointment.patient),
        "meeting": (
            {
                "id": meeting.id,
                "meetLink": meeting.meet_link,
                "calendarEventId": meeting.calendar_event_id,
            }
            if meeting
            else None
        ),
        "reschedules": [serialize_reschedule(r) for r in appointment.reschedules],
        "events": [
            {
                "id": e.id,
                "oldStatus": e.old_status,
                "newStatus": e.new_status,
                "changedBy": e.changed_by,
                "actorRole": e.actor_role,
                "note": e.note,
                "createdAt": e.created_at,
            }
            for e in appointment.events
        ],
    }


class AppointmentService:
    """Service layer for the appointment lifecycle"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.slots = AvailabilityRepository()

    def _get_or_404(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return appointment

    # ============================================================================
    # BOOK
    # ============================================================================

    async def book(self, caller: Caller, data: BookAppointmentRequest) -> dict:
        """Claim a free slot and open a PENDING appointment for the calling patient"""
        authorize(caller, "appointment.book")
        logger.info(f"📥 Booking slot {data.availabilityId} for patient {caller.id}")

        try:
            slot = self.slots.get_slot(self.db, data.availabilityId)
            if not slot or slot.is_booked:
                raise HTTPException(status_code=409, detail=SLOT_UNAVAILABLE)

            # Another transaction may have claimed the slot since it was read
            if not self.slots.claim_slot(self.db, slot.id):
                logger.warning(f"⚠️ Slot {slot.id} was claimed concurrently")
                raise HTTPException(status_code=409, detail=SLOT_UNAVAILABLE)

            appointment = self.repo.create_appointment(
                self.db,
                patient_id=caller.id,
                doctor_id=slot.doctor_id,
                availability_id=slot.id,
                scheduled_start=slot.start_time,
                scheduled_end=slot.end_time,
                reason=data.reason,
                appointment_type=data.appointmentType,
                status=AppointmentStatus.PENDING.value,
            )
            record_event(
                self.db, appointment, None, AppointmentStatus.PENDING.value, caller, "Appointment requested"
            )

            doctor = self.repo.get_user(self.db, slot.doctor_id)
            if doctor:
                await notify_user(
                    self.db,
                    doctor,
                    title="New Appointment Request",
                    message=f"You have a new appointment request from {caller.name}.",
                    email_func=send_appointment_request_to_doctor,
                    email_kwargs={
                        "doctor_email": doctor.email,
                        "doctor_name": doctor.name,
                        "patient_name": caller.name,
                        "start": slot.start_time,
                        "end": slot.end_time,
                        "appointment_type": data.appointmentType,
                        "reason": data.reason,
                    },
                    appointment_id=appointment.id,
                )

            appointment_id = appointment.id
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Appointment {appointment_id} booked (PENDING)")
        return {"appointmentId": appointment_id}

    # ============================================================================
    # CONFIRM
    # ============================================================================

    async def confirm(self, caller: Caller, appointment_id: str) -> dict:
        """
        Confirm an appointment and attach a Google Meet link.

        Re-confirming a CONFIRMED appointment that already has a link returns that
        link without touching the calendar or the database.
        """
        authorize(caller, "appointment.confirm")

        try:
            appointment = self._get_or_404(appointment_id)
            if appointment.doctor_id != caller.id:
                raise HTTPException(status_code=403, detail="Appointment does not belong to this doctor")

            previous_status = appointment.status
            ensure_transition(
                previous_status,
                AppointmentStatus.CONFIRMED.value,
                f"Cannot confirm an appointment in {previous_status} status",
            )

            meeting = self.repo.get_meeting(self.db, appointment.id)
            had_link = bool(meeting and meeting.meet_link)
            if previous_status == AppointmentStatus.CONFIRMED.value and had_link:
                logger.info(f"ℹ️ Appointment {appointment.id} already confirmed")
                return {"meetLink": meeting.meet_link}

            integration = get_integration(self.db, caller.id)
            if not integration:
                raise HTTPException(
                    status_code=412, detail="Connect Google Calendar to confirm appointments"
                )

            patient = self.repo.get_user(self.db, appointment.patient_id)
            event = await create_meet_event(
                integration,
                self.db,
                summary="Medical Appointment",
                description=appointment.reason or f"Consultation with Dr. {caller.name}",
                start=appointment.scheduled_start,
                end=appointment.scheduled_end,
                attendees=[patient.email] if patient and patient.email else [],
            )
            meet_link = extract_meet_link(event)
            if not meet_link:
                logger.error(f"❌ No video entry point returned for appointment {appointment.id}")
                raise HTTPException(status_code=500, detail="Unable to create meeting link")

            self.repo.upsert_meeting(self.db, appointment.id, meet_link, event.get("id"))

            status_changed = previous_status != AppointmentStatus.CONFIRMED.value
            if status_changed:
                appointment.status = AppointmentStatus.CONFIRMED.value
                record_event(
                    self.db,
                    appointment,
                    previous_status,
                    AppointmentStatus.CONFIRMED.value,
                    caller,
                    "Appointment confirmed & Meet created",
                )
                if self.repo.ensure_doctor_patient_link(self.db, caller.id, appointment.patient_id):
                    logger.info(f"🔗 Linked doctor {caller.id} with patient {appointment.patient_id}")

            if (status_changed or not had_link) and patient:
                await notify_user(
                    self.db,
                    patient,
                    title="Appointment Confirmed",
                    message=f"Your appointment with Dr. {caller.name} has been confirmed.",
                    email_func=send_appointment_confirmed_to_patient,
                    email_kwargs={
                        "patient_email": patient.email,
                        "patient_name": patient.name,
                        "doctor_name": caller.name,
                        "start": appointment.scheduled_start,
                        "end": appointment.scheduled_end,
                        "meet_link": meet_link,
                    },
                    appointment_id=appointment.id,
                )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Appointment {appointment_id} confirmed")
        return {"meetLink": meet_link}

    # ============================================================================
    # CANCEL
    # ============================================================================

    async def cancel(self, caller: Caller, data: CancelAppointmentRequest) -> dict:
        """Cancel a PENDING or CONFIRMED appointment and free its slot"""
        authorize(caller, "appointment.cancel")

        try:
            appointment = self._get_or_404(data.appointmentId)
            previous_status = appointment.status
            ensure_transition(
                previous_status,
                AppointmentStatus.CANCELED.value,
                "Only PENDING or CONFIRMED appointments can be canceled",
            )

            appointment.status = AppointmentStatus.CANCELED.value
            appointment.cancelled_at = datetime.utcnow()
            appointment.cancelled_by = caller.role.value
            self.slots.release_slot(self.db, appointment.availability_id)
            record_event(
                self.db, appointment, previous_status, AppointmentStatus.CANCELED.value, caller, data.reason
            )

            if caller.role == Role.DOCTOR:
                patient = self.repo.get_user(self.db, appointment.patient_id)
                if patient:
                    await notify_user(
                        self.db,
                        patient,
                        title="Appointment Cancelled",
                        message=f"Your appointment with Dr. {caller.name} has been cancelled.",
                        email_func=send_appointment_cancelled_to_patient,
                        email_kwargs={
                            "patient_email": patient.email,
                            "patient_name": patient.name,
                            "doctor_name": caller.name,
                            "start": appointment.scheduled_start,
                            "end": appointment.scheduled_end,
                            "reason": data.reason,
                        },
                        appointment_id=appointment.id,
                    )

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🚫 Appointment {data.appointmentId} cancelled by {caller.role.value} {caller.id}")
        return {"success": True}

    # ============================================================================
    # RESCHEDULE
    # ============================================================================

    def request_reschedule(self, caller: Caller, data: RescheduleAppointmentRequest) -> dict:
        """File a reschedule request; the appointment itself is unchanged until approval"""
        authorize(caller, "appointment.reschedule")

        try:
            appointment = self._get_or_404(data.appointmentId)
            if not self.slots.get_slot(self.db, data.newAvailabilityId):
                raise HTTPException(status_code=404, detail="Doctor availability slot not found")

            reschedule = self.repo.create_reschedule(
                self.db,
                appointment_id=appointment.id,
                old_availability_id=appointment.availability_id,
                new_availability_id=data.newAvailabilityId,
                requested_by=caller.id,
            )
            self.db.flush()
            reschedule_id = reschedule.id
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"🔄 Reschedule {reschedule_id} requested for appointment {data.appointmentId}")
        return {"success": True, "rescheduleId": reschedule_id}

    async def approve_reschedule(self, caller: Caller, reschedule_id: str) -> dict:
        """Move the appointment to the requested slot, freeing the old one"""
        authorize(caller, "appointment.approve_reschedule")

        try:
            request = self.repo.get_reschedule(self.db, reschedule_id)
            if not request or request.status != "REQUESTED":
                raise HTTPException(status_code=409, detail="Invalid reschedule request")

            appointment = self._get_or_404(request.appointment_id)
            if appointment.status in TERMINAL_STATUSES:
                raise HTTPException(
                    status_code=409,
                    detail="Only PENDING or CONFIRMED appointments can be rescheduled",
                )

            new_slot = self.slots.get_slot(self.db, request.new_availability_id)
            if not new_slot or new_slot.is_booked:
                raise HTTPException(status_code=409, detail=SLOT_UNAVAILABLE)
            if not self.slots.claim_slot(self.db, new_slot.id):
                logger.warning(f"⚠️ Slot {new_slot.id} was claimed concurrently")
                raise HTTPException(status_code=409, detail=SLOT_UNAVAILABLE)

            self.slots.release_slot(self.db, appointment.availability_id)
            appointment.availability_id = new_slot.id
            appointment.scheduled_start = new_slot.start_time
            appointment.scheduled_end = new_slot.end_time
            request.status = "APPROVED"

            meeting = self.repo.get_meeting(self.db, appointment.id)
            if meeting and meeting.calendar_event_id:
                integration = get_integration(self.db, appointment.doctor_id)
                if integration:
                    patched = await patch_event_times(
                        integration,
                        self.db,
                        meeting.calendar_event_id,
                        new_slot.start_time,
                        new_slot.end_time,
                    )
                    if not patched:
                        raise HTTPException(status_code=500, detail="Unable to update calendar event")

            record_event(
                self.db,
                appointment,
                appointment.status,
                appointment.status,
                caller,
                "Appointment rescheduled",
            )
            appointment_id = appointment.id
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Reschedule {reschedule_id} approved for appointment {appointment_id}")
        return {"success": True}

    # ============================================================================
    # OUTCOMES
    # ============================================================================

    def mark_completed(self, caller: Caller, appointment_id: str, notes: Optional[str] = None) -> dict:
        authorize(caller, "appointment.mark_completed")

        try:
            appointment = self._get_or_404(appointment_id)
            previous_status = appointment.status
            ensure_transition(
                previous_status,
                AppointmentStatus.COMPLETED.value,
                "Only confirmed appointments can be marked as completed",
            )
            appointment.status = AppointmentStatus.COMPLETED.value
            appointment.completed_at = datetime.utcnow()
            record_event(
                self.db, appointment, previous_status, AppointmentStatus.COMPLETED.value, caller, notes
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"✅ Appointment {appointment_id} completed")
        return {"success": True}

    def mark_no_show(self, caller: Caller, appointment_id: str) -> dict:
        authorize(caller, "appointment.mark_no_show")

        try:
            appointment = self._get_or_404(appointment_id)
            previous_status = appointment.status
            ensure_transition(
                previous_status,
                AppointmentStatus.NO_SHOW.value,
                "Only confirmed appointments can be marked as no-show",
            )
            appointment.status = AppointmentStatus.NO_SHOW.value
            record_event(self.db, appointment, previous_status, AppointmentStatus.NO_SHOW.value, caller)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"👻 Appointment {appointment_id} marked as no-show")
        return {"success": True}

    # ============================================================================
    # QUERIES
    # ============================================================================

    def get_by_id(self, caller: Caller, appointment_id: str) -> dict:
        appointment = self.repo.get_appointment_detail(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Appointment not found")
        if not caller.is_admin and caller.id not in (appointment.doctor_id, appointment.patient_id):
            raise HTTPException(status_code=403, detail="You do not have access to this appointment")
        return serialize_appointment_detail(appointment)

    def list_appointments(
        self,
        caller: Caller,
        status: Optional[str] = None,
        page: int = 1,
        page_size: int = 10,
    ) -> dict:
        """Newest first; doctors and patients only see their own appointments"""
        query = self.repo.list_query(
            self.db,
            doctor_id=caller.id if caller.is_doctor else None,
            patient_id=caller.id if caller.is_patient else None,
            status=status,
        )
        appointments, pagination = paginate(query, page, page_size)

        pending: dict[str, AppointmentReschedule] = {}
        latest: dict[str, str] = {}
        for reschedule in self.repo.get_reschedules_for(self.db, [a.id for a in appointments]):
            latest[reschedule.appointment_id] = reschedule.status
            if reschedule.status == "REQUESTED":
                pending[reschedule.appointment_id] = reschedule

        items = []
        for appointment in appointments:
            request = pending.get(appointment.id)
            items.append(
                {
                    "id": appointment.id,
                    "status": appointment.status,
                    "reason": appointment.reason,
                    "appointmentType": appointment.appointment_type,
                    "scheduledStart": appointment.scheduled_start,
                    "scheduledEnd": appointment.scheduled_end,
                    "createdAt": appointment.created_at,
                    "doctorId": appointment.doctor_id,
                    "doctorName": appointment.doctor.name if appointment.doctor else None,
                    "doctorSpecialty": appointment.doctor.specialty if appointment.doctor else None,
                    "patientId": appointment.patient_id,
                    "patientName": appointment.patient.name if appointment.patient else None,
                    "meetLink": appointment.meeting.meet_link if appointment.meeting else None,
                    "rescheduleRequestId": request.id if request else None,
                    "rescheduleStatus": request.status if request else None,
                    "latestRescheduleStatus": latest.get(appointment.id),
                }
            )
        return {"items": items, "pagination": pagination}
