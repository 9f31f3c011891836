"""Tests for doctor ratings and the running average."""

import pytest
from fastapi import HTTPException

from conftest import as_caller
from telehealth.domain.ratings.schemas import RatingCreate, RatingEdit
from telehealth.domain.ratings.service import RatingService
from telehealth.models import DoctorRating, User


@pytest.fixture
def service(db):
    return RatingService(db)


def rate(service, patient, doctor, value, review=None):
    return service.create(as_caller(patient), RatingCreate(doctorId=doctor.id, rating=value, review=review))


def aggregate(db, doctor):
    db.expire_all()
    user = db.get(User, doctor.id)
    return user.average_rating, user.rating_count


class TestCreateRating:
    """Tests for rating a doctor."""

    def test_running_average(self, db, service, doctor, make_user):
        """Test the stored average tracks the mean of all ratings."""
        rate(service, make_user("PATIENT"), doctor, 5)
        rate(service, make_user("PATIENT"), doctor, 3)
        rate(service, make_user("PATIENT"), doctor, 4)

        average, count = aggregate(db, doctor)
        assert count == 3
        assert average == pytest.approx(4.0)
        assert service.average(doctor.id) == pytest.approx(4.0)

    def test_one_rating_per_patient(self, db, service, doctor, patient):
        """Test a patient cannot rate the same doctor twice."""
        rate(service, patient, doctor, 5)
        with pytest.raises(HTTPException) as exc:
            rate(service, patient, doctor, 1)
        assert exc.value.status_code == 409
        assert exc.value.detail == "You have already rated this doctor."
        assert aggregate(db, doctor) == (pytest.approx(5.0), 1)

    def test_unknown_doctor(self, service, patient, make_user):
        """Test rating a non-doctor user is a 404."""
        other_patient = make_user("PATIENT")
        with pytest.raises(HTTPException) as exc:
            rate(service, patient, other_patient, 4)
        assert exc.value.status_code == 404

    def test_only_patients_rate(self, service, doctor, make_user):
        """Test doctors cannot leave ratings."""
        with pytest.raises(HTTPException) as exc:
            rate(service, make_user("DOCTOR"), doctor, 4)
        assert exc.value.status_code == 403

    def test_blank_review_stored_as_null(self, db, service, doctor, patient):
        """Test whitespace reviews are not stored."""
        result = rate(service, patient, doctor, 4, review="   ")
        assert db.get(DoctorRating, result["id"]).review is None


class TestListRatings:
    """Tests for rating listings."""

    def test_average_without_ratings(self, service, doctor):
        """Test the average of no ratings is None."""
        assert service.average(doctor.id) is None

    def test_list_for_doctor(self, service, doctor, patient):
        """Test the public listing includes the reviewer's name."""
        rate(service, patient, doctor, 5, review="Very thorough")
        result = service.list_ratings(doctor.id)
        assert result["pagination"].total == 1
        assert result["items"][0]["patientName"] == "Sara Tesfaye"
        assert result["items"][0]["review"] == "Very thorough"

    def test_list_for_patient_marks_rated(self, service, doctor, patient, make_user):
        """Test the doctors-to-rate list shows the caller's existing rating."""
        other = make_user("DOCTOR", name="Hana Girma", specialty="Dermatology")
        rate(service, patient, doctor, 4)

        items = {i["id"]: i for i in service.list_for_patient(as_caller(patient))["items"]}
        assert items[doctor.id]["hasRated"] is True
        assert items[doctor.id]["patientRating"] == 4
        assert items[other.id]["hasRated"] is False

    def test_list_for_patient_search(self, service, doctor, patient, make_user):
        """Test searching by specialty."""
        make_user("DOCTOR", name="Hana Girma", specialty="Dermatology")
        items = service.list_for_patient(as_caller(patient), search="derma")["items"]
        assert [i["name"] for i in items] == ["Hana Girma"]


class TestAdminModeration:
    """Tests for admin edits and deletions."""

    def test_edit_recomputes_average(self, db, service, doctor, patient, make_user, admin):
        """Test editing a rating rebuilds the aggregate."""
        created = rate(service, patient, doctor, 1)
        rate(service, make_user("PATIENT"), doctor, 5)

        service.edit(as_caller(admin), created["id"], RatingEdit(rating=3))
        assert aggregate(db, doctor) == (pytest.approx(4.0), 2)

    def test_delete_last_rating_clears_average(self, db, service, doctor, patient, admin):
        """Test deleting the only rating resets the aggregate."""
        created = rate(service, patient, doctor, 5)
        service.delete(as_caller(admin), created["id"])
        assert aggregate(db, doctor) == (None, 0)

    def test_non_admin_cannot_edit(self, service, doctor, patient):
        """Test patients cannot moderate ratings."""
        created = rate(service, patient, doctor, 5)
        with pytest.raises(HTTPException) as exc:
            service.edit(as_caller(patient), created["id"], RatingEdit(rating=1))
        assert exc.value.status_code == 403
