"""Tests for the appointment lifecycle."""

from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from conftest import MEET_LINK, as_caller
from telehealth.domain.appointments.schemas import (
    BookAppointmentRequest,
    CancelAppointmentRequest,
    RescheduleAppointmentRequest,
)
from telehealth.domain.appointments.service import AppointmentService
from telehealth.models import (
    Appointment,
    AppointmentEvent,
    AppointmentMeeting,
    DoctorAvailability,
    DoctorPatient,
    Notification,
)


@pytest.fixture
def service(db):
    return AppointmentService(db)


async def book(service, patient, slot, reason="Chest pain"):
    result = await service.book(
        as_caller(patient),
        BookAppointmentRequest(availabilityId=slot.id, reason=reason, appointmentType="VIDEO"),
    )
    return result["appointmentId"]


def slot_booked(db, slot_id) -> bool:
    db.expire_all()
    return db.get(DoctorAvailability, slot_id).is_booked


def events_for(db, appointment_id):
    return (
        db.query(AppointmentEvent)
        .filter(AppointmentEvent.appointment_id == appointment_id)
        .order_by(AppointmentEvent.created_at.asc())
        .all()
    )


class TestBook:
    """Tests for booking a slot."""

    async def test_book_creates_pending_appointment(self, db, service, doctor, patient, make_slot, mock_email):
        """Test booking claims the slot, opens a PENDING appointment and emails the doctor."""
        slot = make_slot(doctor)
        appointment_id = await book(service, patient, slot)

        appointment = db.get(Appointment, appointment_id)
        assert appointment.status == "PENDING"
        assert appointment.doctor_id == doctor.id
        assert appointment.scheduled_start == slot.start_time
        assert slot_booked(db, slot.id)

        events = events_for(db, appointment_id)
        assert [(e.old_status, e.new_status) for e in events] == [(None, "PENDING")]
        assert events[0].note == "Appointment requested"

        mock_email.requested.assert_awaited_once()
        assert mock_email.requested.await_args.kwargs["doctor_email"] == doctor.email
        assert db.query(Notification).filter(Notification.user_id == doctor.id).count() == 1

    async def test_booked_slot_is_unavailable(self, db, service, doctor, patient, make_user, make_slot):
        """Test a second booking of the same slot fails with no new appointment."""
        slot = make_slot(doctor)
        await book(service, patient, slot)

        with pytest.raises(HTTPException) as exc:
            await book(service, make_user("PATIENT"), slot)
        assert exc.value.status_code == 409
        assert exc.value.detail == "Slot unavailable"
        assert db.query(Appointment).count() == 1

    async def test_missing_slot_is_unavailable(self, service, patient):
        """Test booking an unknown slot is a conflict."""
        with pytest.raises(HTTPException) as exc:
            await service.book(
                as_caller(patient), BookAppointmentRequest(availabilityId="nope", appointmentType="CHAT")
            )
        assert exc.value.status_code == 409

    async def test_only_patients_book(self, service, doctor, make_slot):
        """Test doctors cannot book."""
        slot = make_slot(doctor)
        with pytest.raises(HTTPException) as exc:
            await book(service, doctor, slot)
        assert exc.value.status_code == 403

    async def test_concurrent_claim_loses(self, db, service, doctor, patient, make_user, make_slot, monkeypatch):
        """Test a stale read of a free slot still loses to the guarded claim."""
        slot = make_slot(doctor)
        await book(service, patient, slot)

        stale = SimpleNamespace(
            id=slot.id,
            is_booked=False,
            doctor_id=doctor.id,
            start_time=slot.start_time,
            end_time=slot.end_time,
        )
        monkeypatch.setattr(service.slots, "get_slot", lambda _db, _id: stale)

        with pytest.raises(HTTPException) as exc:
            await book(service, make_user("PATIENT"), slot)
        assert exc.value.detail == "Slot unavailable"
        assert db.query(Appointment).count() == 1

    async def test_email_failure_rolls_back(self, db, service, doctor, patient, make_slot, mock_email):
        """Test a provider error aborts the booking and leaves the slot free."""
        slot = make_slot(doctor)
        mock_email.requested.side_effect = Exception("Failed to send email")

        with pytest.raises(Exception, match="Failed to send email"):
            await book(service, patient, slot)
        assert db.query(Appointment).count() == 0
        assert not slot_booked(db, slot.id)


class TestConfirm:
    """Tests for confirming an appointment."""

    async def test_confirm_creates_meeting(
        self, db, service, doctor, patient, make_slot, calendar_integration, mock_email, mock_calendar
    ):
        """Test confirming stores the Meet link, links the pair and emails the patient."""
        appointment_id = await book(service, patient, make_slot(doctor))

        result = await service.confirm(as_caller(doctor), appointment_id)
        assert result == {"meetLink": MEET_LINK}

        db.expire_all()
        assert db.get(Appointment, appointment_id).status == "CONFIRMED"
        meeting = db.query(AppointmentMeeting).one()
        assert meeting.meet_link == MEET_LINK
        assert meeting.calendar_event_id == "evt-123"
        assert db.query(DoctorPatient).filter_by(doctor_id=doctor.id, patient_id=patient.id).count() == 1
        assert events_for(db, appointment_id)[-1].note == "Appointment confirmed & Meet created"
        mock_email.confirmed.assert_awaited_once()
        assert mock_calendar.create_event.await_args.kwargs["attendees"] == [patient.email]

    async def test_confirm_is_idempotent(
        self, db, service, doctor, patient, make_slot, calendar_integration, mock_email, mock_calendar
    ):
        """Test re-confirming returns the same link without a second event or email."""
        appointment_id = await book(service, patient, make_slot(doctor))
        first = await service.confirm(as_caller(doctor), appointment_id)
        second = await service.confirm(as_caller(doctor), appointment_id)

        assert first == second
        assert mock_calendar.create_event.await_count == 1
        assert mock_email.confirmed.await_count == 1
        assert db.query(AppointmentMeeting).count() == 1
        assert len(events_for(db, appointment_id)) == 2

    async def test_confirm_requires_calendar(self, db, service, doctor, patient, make_slot):
        """Test confirming without a linked calendar is a failed precondition."""
        appointment_id = await book(service, patient, make_slot(doctor))
        with pytest.raises(HTTPException) as exc:
            await service.confirm(as_caller(doctor), appointment_id)
        assert exc.value.status_code == 412
        db.expire_all()
        assert db.get(Appointment, appointment_id).status == "PENDING"

    async def test_confirm_other_doctors_appointment(
        self, service, doctor, patient, make_user, make_slot, calendar_integration
    ):
        """Test a doctor cannot confirm someone else's appointment."""
        appointment_id = await book(service, patient, make_slot(doctor))
        with pytest.raises(HTTPException) as exc:
            await service.confirm(as_caller(make_user("DOCTOR")), appointment_id)
        assert exc.value.status_code == 403

    async def test_confirm_without_video_entry_point(
        self, db, service, doctor, patient, make_slot, calendar_integration, mock_calendar
    ):
        """Test a provider response without a link aborts the confirmation."""
        mock_calendar.create_event.return_value = {"id": "evt-9", "conferenceData": {"entryPoints": []}}
        appointment_id = await book(service, patient, make_slot(doctor))

        with pytest.raises(HTTPException) as exc:
            await service.confirm(as_caller(doctor), appointment_id)
        assert exc.value.status_code == 500
        assert db.query(AppointmentMeeting).count() == 0

    async def test_confirm_cancelled_appointment(self, service, doctor, patient, make_slot, calendar_integration):
        """Test a cancelled appointment cannot be confirmed."""
        appointment_id = await book(service, patient, make_slot(doctor))
        await service.cancel(as_caller(patient), CancelAppointmentRequest(appointmentId=appointment_id))

        with pytest.raises(HTTPException) as exc:
            await service.confirm(as_caller(doctor), appointment_id)
        assert exc.value.status_code == 409
        assert exc.value.detail == "Cannot confirm an appointment in CANCELED status"


class TestCancel:
    """Tests for cancellation."""

    async def test_patient_cancel_frees_slot(self, db, service, doctor, patient, make_slot, mock_email):
        """Test cancelling releases the slot without emailing the patient."""
        slot = make_slot(doctor)
        appointment_id = await book(service, patient, slot)

        await service.cancel(
            as_caller(patient), CancelAppointmentRequest(appointmentId=appointment_id, reason="Feeling better")
        )

        db.expire_all()
        appointment = db.get(Appointment, appointment_id)
        assert appointment.status == "CANCELED"
        assert appointment.cancelled_by == "PATIENT"
        assert appointment.cancelled_at is not None
        assert not slot_booked(db, slot.id)
        assert events_for(db, appointment_id)[-1].note == "Feeling better"
        mock_email.cancelled.assert_not_awaited()

    async def test_doctor_cancel_emails_patient(self, service, doctor, patient, make_slot, mock_email):
        """Test a doctor-initiated cancellation notifies the patient."""
        appointment_id = await book(service, patient, make_slot(doctor))
        await service.cancel(as_caller(doctor), CancelAppointmentRequest(appointmentId=appointment_id))
        mock_email.cancelled.assert_awaited_once()

    async def test_freed_slot_can_be_rebooked(self, service, doctor, patient, make_user, make_slot):
        """Test another patient can book a slot after cancellation."""
        slot = make_slot(doctor)
        appointment_id = await book(service, patient, slot)
        await service.cancel(as_caller(patient), CancelAppointmentRequest(appointmentId=appointment_id))

        assert await book(service, make_user("PATIENT"), slot)

    async def test_cancel_twice(self, service, doctor, patient, make_slot):
        """Test a cancelled appointment cannot be cancelled again."""
        appointment_id = await book(service, patient, make_slot(doctor))
        request = CancelAppointmentRequest(appointmentId=appointment_id)
        await service.cancel(as_caller(patient), request)

        with pytest.raises(HTTPException) as exc:
            await service.cancel(as_caller(patient), request)
        assert exc.value.status_code == 409
        assert exc.value.detail == "Only PENDING or CONFIRMED appointments can be canceled"


class TestReschedule:
    """Tests for reschedule requests and approval."""

    async def test_request_then_approve(self, db, service, doctor, patient, make_slot):
        """Test approval moves the appointment and swaps slot bookings."""
        old_slot = make_slot(doctor, hours=0)
        new_slot = make_slot(doctor, hours=4)
        appointment_id = await book(service, patient, old_slot)

        requested = service.request_reschedule(
            as_caller(patient),
            RescheduleAppointmentRequest(appointmentId=appointment_id, newAvailabilityId=new_slot.id),
        )
        listing = service.list_appointments(as_caller(patient))
        assert listing["items"][0]["rescheduleRequestId"] == requested["rescheduleId"]
        assert listing["items"][0]["rescheduleStatus"] == "REQUESTED"

        await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])

        db.expire_all()
        appointment = db.get(Appointment, appointment_id)
        assert appointment.availability_id == new_slot.id
        assert appointment.scheduled_start == new_slot.start_time
        assert appointment.status == "PENDING"
        assert not slot_booked(db, old_slot.id)
        assert slot_booked(db, new_slot.id)

        last = events_for(db, appointment_id)[-1]
        assert (last.old_status, last.new_status, last.note) == ("PENDING", "PENDING", "Appointment rescheduled")

        listing = service.list_appointments(as_caller(patient))
        assert listing["items"][0]["rescheduleRequestId"] is None
        assert listing["items"][0]["latestRescheduleStatus"] == "APPROVED"

    async def test_approve_twice_conflicts(self, service, doctor, patient, make_slot):
        """Test an approved request cannot be approved again."""
        appointment_id = await book(service, patient, make_slot(doctor, hours=0))
        new_slot = make_slot(doctor, hours=4)
        requested = service.request_reschedule(
            as_caller(patient),
            RescheduleAppointmentRequest(appointmentId=appointment_id, newAvailabilityId=new_slot.id),
        )
        await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])

        with pytest.raises(HTTPException) as exc:
            await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])
        assert exc.value.status_code == 409
        assert exc.value.detail == "Invalid reschedule request"

    async def test_approve_after_cancel_conflicts(self, db, service, doctor, patient, make_slot):
        """Test a cancelled appointment cannot be moved onto the requested slot."""
        appointment_id = await book(service, patient, make_slot(doctor, hours=0))
        new_slot = make_slot(doctor, hours=4)
        requested = service.request_reschedule(
            as_caller(patient),
            RescheduleAppointmentRequest(appointmentId=appointment_id, newAvailabilityId=new_slot.id),
        )
        await service.cancel(as_caller(patient), CancelAppointmentRequest(appointmentId=appointment_id))

        with pytest.raises(HTTPException) as exc:
            await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])
        assert exc.value.status_code == 409
        assert not slot_booked(db, new_slot.id)
        assert db.get(Appointment, appointment_id).status == "CANCELED"

    async def test_approve_onto_booked_slot(self, db, service, doctor, patient, make_user, make_slot):
        """Test approval fails when the target slot was taken meanwhile."""
        old_slot = make_slot(doctor, hours=0)
        new_slot = make_slot(doctor, hours=4)
        appointment_id = await book(service, patient, old_slot)
        requested = service.request_reschedule(
            as_caller(patient),
            RescheduleAppointmentRequest(appointmentId=appointment_id, newAvailabilityId=new_slot.id),
        )
        await book(service, make_user("PATIENT"), new_slot)

        with pytest.raises(HTTPException) as exc:
            await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])
        assert exc.value.detail == "Slot unavailable"
        assert slot_booked(db, old_slot.id)

    async def test_approve_patches_calendar_event(
        self, db, service, doctor, patient, make_slot, calendar_integration, mock_calendar
    ):
        """Test a confirmed appointment's calendar event follows the new slot."""
        appointment_id = await book(service, patient, make_slot(doctor, hours=0))
        await service.confirm(as_caller(doctor), appointment_id)
        new_slot = make_slot(doctor, hours=6)
        requested = service.request_reschedule(
            as_caller(doctor),
            RescheduleAppointmentRequest(appointmentId=appointment_id, newAvailabilityId=new_slot.id),
        )

        await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])

        mock_calendar.patch_times.assert_awaited_once()
        args = mock_calendar.patch_times.await_args.args
        assert args[2] == "evt-123"
        assert args[3] == new_slot.start_time

    async def test_calendar_patch_failure_aborts(
        self, db, service, doctor, patient, make_slot, calendar_integration, mock_calendar
    ):
        """Test a failed calendar update rolls the approval back."""
        old_slot = make_slot(doctor, hours=0)
        appointment_id = await book(service, patient, old_slot)
        await service.confirm(as_caller(doctor), appointment_id)
        new_slot = make_slot(doctor, hours=6)
        requested = service.request_reschedule(
            as_caller(patient),
            RescheduleAppointmentRequest(appointmentId=appointment_id, newAvailabilityId=new_slot.id),
        )
        mock_calendar.patch_times.return_value = False

        with pytest.raises(HTTPException) as exc:
            await service.approve_reschedule(as_caller(doctor), requested["rescheduleId"])
        assert exc.value.status_code == 500
        db.expire_all()
        assert db.get(Appointment, appointment_id).availability_id == old_slot.id
        assert not slot_booked(db, new_slot.id)

    def test_request_for_missing_appointment(self, service, patient):
        """Test a reschedule request needs an existing appointment."""
        with pytest.raises(HTTPException) as exc:
            service.request_reschedule(
                as_caller(patient), RescheduleAppointmentRequest(appointmentId="x", newAvailabilityId="y")
            )
        assert exc.value.status_code == 404


class TestOutcomes:
    """Tests for completion and no-show outcomes."""

    async def test_mark_completed(self, db, service, doctor, patient, make_slot, calendar_integration):
        """Test a confirmed appointment can be completed with notes."""
        appointment_id = await book(service, patient, make_slot(doctor))
        await service.confirm(as_caller(doctor), appointment_id)

        service.mark_completed(as_caller(doctor), appointment_id, "Follow up in two weeks")

        db.expire_all()
        appointment = db.get(Appointment, appointment_id)
        assert appointment.status == "COMPLETED"
        assert appointment.completed_at is not None
        assert events_for(db, appointment_id)[-1].note == "Follow up in two weeks"

    async def test_pending_cannot_complete(self, service, doctor, patient, make_slot):
        """Test completion requires a confirmed appointment."""
        appointment_id = await book(service, patient, make_slot(doctor))
        with pytest.raises(HTTPException) as exc:
            service.mark_completed(as_caller(doctor), appointment_id)
        assert exc.value.status_code == 409

    async def test_mark_no_show_by_admin(self, db, service, doctor, patient, admin, make_slot, calendar_integration):
        """Test an admin may record a no-show."""
        appointment_id = await book(service, patient, make_slot(doctor))
        await service.confirm(as_caller(doctor), appointment_id)

        service.mark_no_show(as_caller(admin), appointment_id)
        db.expire_all()
        assert db.get(Appointment, appointment_id).status == "NO_SHOW"

    async def test_patient_cannot_mark_no_show(self, service, doctor, patient, make_slot):
        """Test patients cannot record outcomes."""
        appointment_id = await book(service, patient, make_slot(doctor))
        with pytest.raises(HTTPException) as exc:
            service.mark_no_show(as_caller(patient), appointment_id)
        assert exc.value.status_code == 403


class TestQueries:
    """Tests for appointment listing and detail."""

    async def test_list_is_scoped_and_filtered(self, service, doctor, patient, make_user, make_slot):
        """Test patients see only their own appointments and status filters apply."""
        other = make_user("PATIENT")
        mine = await book(service, patient, make_slot(doctor, hours=0))
        await book(service, other, make_slot(doctor, hours=1))

        result = service.list_appointments(as_caller(patient))
        assert [a["id"] for a in result["items"]] == [mine]

        assert service.list_appointments(as_caller(doctor))["pagination"].total == 2
        assert service.list_appointments(as_caller(doctor), status="CONFIRMED")["items"] == []
        assert service.list_appointments(as_caller(doctor), status="ALL")["pagination"].total == 2

    async def test_list_newest_first(self, service, doctor, patient, make_slot):
        """Test listings are ordered by creation time, newest first."""
        first = await book(service, patient, make_slot(doctor, hours=0))
        second = await book(service, patient, make_slot(doctor, hours=1))
        ids = [a["id"] for a in service.list_appointments(as_caller(patient))["items"]]
        assert ids == [second, first]

    async def test_detail_includes_history(self, service, doctor, patient, make_slot):
        """Test the detail view carries participants and events."""
        appointment_id = await book(service, patient, make_slot(doctor))
        detail = service.get_by_id(as_caller(patient), appointment_id)
        assert detail["doctor"]["name"] == "Abebe Kebede"
        assert detail["patient"]["id"] == patient.id
        assert detail["meeting"] is None
        assert [e["newStatus"] for e in detail["events"]] == ["PENDING"]

    async def test_detail_hidden_from_outsiders(self, service, doctor, patient, make_user, make_slot):
        """Test non-participants cannot read an appointment."""
        appointment_id = await book(service, patient, make_slot(doctor))
        with pytest.raises(HTTPException) as exc:
            service.get_by_id(as_caller(make_user("PATIENT")), appointment_id)
        assert exc.value.status_code == 403


class TestEndToEnd:
    """Full lifecycle scenarios."""

    async def test_book_confirm_complete(
        self, db, service, doctor, patient, make_slot, calendar_integration, mock_email
    ):
        """Test the happy path from booking through completion."""
        slot = make_slot(doctor)
        appointment_id = await book(service, patient, slot)
        await service.confirm(as_caller(doctor), appointment_id)
        service.mark_completed(as_caller(doctor), appointment_id)

        transitions = [(e.old_status, e.new_status) for e in events_for(db, appointment_id)]
        assert transitions == [(None, "PENDING"), ("PENDING", "CONFIRMED"), ("CONFIRMED", "COMPLETED")]
        assert slot_booked(db, slot.id)
        assert db.query(Notification).count() == 2
