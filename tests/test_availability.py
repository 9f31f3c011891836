"""Tests for doctor availability and time off."""

from datetime import datetime, timedelta

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from conftest import as_caller
from telehealth.domain.availability.schemas import AvailabilityCreate, TimeOffCreate
from telehealth.domain.availability.service import AvailabilityService, overlaps
from telehealth.models import Appointment, DoctorAvailability, DoctorTimeOff


@pytest.fixture
def service(db):
    return AvailabilityService(db)


class TestOverlap:
    """Tests for half-open interval overlap."""

    def test_touching_intervals_do_not_overlap(self):
        """Test [9,10) and [10,11) are disjoint."""
        nine = datetime(2030, 1, 1, 9)
        ten = datetime(2030, 1, 1, 10)
        eleven = datetime(2030, 1, 1, 11)
        assert not overlaps(nine, ten, ten, eleven)

    def test_contained_interval_overlaps(self):
        """Test an interval inside another overlaps it."""
        start = datetime(2030, 1, 1, 9)
        assert overlaps(start, start + timedelta(hours=2), start + timedelta(minutes=30), start + timedelta(hours=1))


class TestCreateSlot:
    """Tests for publishing availability."""

    def test_doctor_creates_unbooked_slot(self, service, doctor):
        """Test a new slot is unbooked and owned by the caller."""
        start = datetime(2030, 2, 1, 9, 0)
        result = service.create(as_caller(doctor), AvailabilityCreate(startTime=start, endTime=start + timedelta(minutes=30)))
        assert result["doctorId"] == doctor.id
        assert result["isBooked"] is False
        assert result["timezone"]

    def test_patient_cannot_create_slot(self, service, patient):
        """Test patients are rejected."""
        start = datetime(2030, 2, 1, 9, 0)
        with pytest.raises(HTTPException) as exc:
            service.create(as_caller(patient), AvailabilityCreate(startTime=start, endTime=start + timedelta(minutes=30)))
        assert exc.value.status_code == 403

    def test_end_before_start_is_invalid(self):
        """Test an empty or inverted interval fails validation."""
        start = datetime(2030, 2, 1, 9, 0)
        with pytest.raises(ValidationError):
            AvailabilityCreate(startTime=start, endTime=start)

    def test_overlapping_slots_are_allowed(self, service, doctor):
        """Test no overlap validation is performed on creation."""
        start = datetime(2030, 2, 1, 9, 0)
        caller = as_caller(doctor)
        service.create(caller, AvailabilityCreate(startTime=start, endTime=start + timedelta(hours=1)))
        service.create(caller, AvailabilityCreate(startTime=start, endTime=start + timedelta(hours=1)))
        assert len(service.get_by_doctor(doctor.id)) == 2


class TestListPublic:
    """Tests for the public slot listing."""

    def test_filters_and_orders_by_start(self, service, doctor, make_slot):
        """Test listing filters by booking state and sorts ascending."""
        later = make_slot(doctor, hours=5)
        earlier = make_slot(doctor, hours=1)
        make_slot(doctor, hours=3, is_booked=True)

        result = service.list_public(doctor_id=doctor.id, is_booked=False)
        assert [s["id"] for s in result["items"]] == [earlier.id, later.id]
        assert result["pagination"].total == 2

    def test_time_off_excluded_but_total_not_adjusted(self, db, service, doctor, make_slot):
        """Test slots inside time off are dropped while the total still counts them."""
        free = make_slot(doctor, hours=0)
        blocked = make_slot(doctor, hours=2)
        db.add(
            DoctorTimeOff(
                doctor_id=doctor.id,
                start_time=blocked.start_time - timedelta(minutes=10),
                end_time=blocked.end_time + timedelta(minutes=10),
            )
        )
        db.commit()

        result = service.list_public(doctor_id=doctor.id)
        assert [s["id"] for s in result["items"]] == [free.id]
        assert result["pagination"].total == 2

    def test_pagination(self, service, doctor, make_slot):
        """Test page sizing and totalPages."""
        for hour in range(5):
            make_slot(doctor, hours=hour)
        result = service.list_public(doctor_id=doctor.id, page=2, page_size=2)
        assert len(result["items"]) == 2
        assert result["pagination"].totalPages == 3


class TestDirectoryAndDoctorView:
    """Tests for the directory listing and the per-doctor view."""

    def test_directory_search_by_doctor_name(self, service, doctor, make_user, make_slot, patient):
        """Test the directory joins doctor details and filters by name."""
        other = make_user("DOCTOR", name="Hana Girma")
        make_slot(doctor, hours=1)
        make_slot(other, hours=2)

        result = service.list_all(as_caller(patient), is_booked=False, search="abebe")
        assert len(result["items"]) == 1
        assert result["items"][0]["doctorName"] == "Abebe Kebede"
        assert result["items"][0]["specialty"] == "Cardiology"

    def test_booked_and_time_off_slots_are_disabled(self, db, service, doctor, make_slot):
        """Test the doctor view marks unavailable slots disabled."""
        free = make_slot(doctor, hours=0)
        booked = make_slot(doctor, hours=1, is_booked=True)
        off = make_slot(doctor, hours=3)
        db.add(DoctorTimeOff(doctor_id=doctor.id, start_time=off.start_time, end_time=off.end_time))
        db.commit()

        disabled = {s["id"]: s["isDisabled"] for s in service.get_by_doctor(doctor.id)}
        assert disabled == {free.id: False, booked.id: True, off.id: True}


class TestDeleteSlot:
    """Tests for slot deletion."""

    def test_delete_free_slot(self, db, service, doctor, make_slot):
        """Test an unreferenced slot is removed."""
        slot = make_slot(doctor)
        assert service.delete(as_caller(doctor), slot.id) == {"success": True}
        assert db.query(DoctorAvailability).count() == 0

    def test_delete_missing_slot(self, service, doctor):
        """Test deleting an unknown slot is a 404."""
        with pytest.raises(HTTPException) as exc:
            service.delete(as_caller(doctor), "missing")
        assert exc.value.status_code == 404

    def test_delete_referenced_slot_conflicts(self, db, service, doctor, patient, make_slot):
        """Test a slot referenced by an appointment cannot be deleted."""
        slot = make_slot(doctor, is_booked=True)
        db.add(
            Appointment(
                patient_id=patient.id,
                doctor_id=doctor.id,
                availability_id=slot.id,
                appointment_type="VIDEO",
                status="PENDING",
                scheduled_start=slot.start_time,
                scheduled_end=slot.end_time,
            )
        )
        db.commit()

        with pytest.raises(HTTPException) as exc:
            service.delete(as_caller(doctor), slot.id)
        assert exc.value.status_code == 409
        assert db.query(DoctorAvailability).count() == 1


class TestTimeOff:
    """Tests for doctor time off."""

    def test_create_list_delete(self, service, doctor):
        """Test the time-off round trip for the owning doctor."""
        caller = as_caller(doctor)
        start = datetime.utcnow() + timedelta(days=1)
        created = service.create_time_off(
            caller, TimeOffCreate(startTime=start, endTime=start + timedelta(days=2), reason="  Conference ")
        )
        listed = service.list_time_off(caller)
        assert [t["id"] for t in listed] == [created["id"]]
        assert listed[0]["reason"] == "Conference"

        service.delete_time_off(caller, created["id"])
        assert service.list_time_off(caller) == []

    def test_past_time_off_not_listed(self, db, service, doctor):
        """Test time off that already ended is hidden."""
        past = datetime.utcnow() - timedelta(days=5)
        db.add(DoctorTimeOff(doctor_id=doctor.id, start_time=past, end_time=past + timedelta(days=1)))
        db.commit()
        assert service.list_time_off(as_caller(doctor)) == []

    def test_other_doctor_cannot_delete(self, db, service, doctor, make_user):
        """Test deletion is scoped to the caller's own time off."""
        start = datetime.utcnow() + timedelta(days=1)
        created = service.create_time_off(
            as_caller(doctor), TimeOffCreate(startTime=start, endTime=start + timedelta(hours=4))
        )
        other = make_user("DOCTOR")
        service.delete_time_off(as_caller(other), created["id"])
        assert db.query(DoctorTimeOff).count() == 1
