"""Shared pytest fixtures."""

import os

# Must be set before the telehealth package builds its engine
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.pop("REDIS_URL", None)
os.environ.pop("REDIS_HOST", None)
os.environ.pop("RESEND_API_KEY", None)

from datetime import datetime, timedelta  # noqa: E402
from types import SimpleNamespace  # noqa: E402
from unittest.mock import AsyncMock, MagicMock, patch  # noqa: E402

import pytest  # noqa: E402

from telehealth import models_google_calendar, models_messaging, models_records  # noqa: E402,F401
from telehealth.database import Base, SessionLocal, engine  # noqa: E402
from telehealth.models import DoctorAvailability, DoctorPatient, User  # noqa: E402
from telehealth.models_google_calendar import GoogleCalendarIntegration  # noqa: E402
from telehealth.policy import Caller  # noqa: E402
from telehealth.services.google_calendar_service import encrypt_token  # noqa: E402

MEET_LINK = "https://meet.google.com/abc-defg-hij"

MEET_EVENT = {
    "id": "evt-123",
    "hangoutLink": MEET_LINK,
    "conferenceData": {
        "entryPoints": [
            {"entryPointType": "phone", "uri": "tel:+1-555-0100"},
            {"entryPointType": "video", "uri": MEET_LINK},
        ]
    },
}


@pytest.fixture
def db():
    """Fresh schema per test on the shared in-memory connection."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def make_user(db):
    """Factory for users of any role."""
    counter = {"n": 0}

    def _make(role="PATIENT", name=None, email=None, **extra):
        counter["n"] += 1
        user = User(
            name=name or f"{role.title()} {counter['n']}",
            email=email or f"{role.lower()}{counter['n']}@example.com",
            role=role,
            **extra,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture
def doctor(make_user):
    return make_user("DOCTOR", name="Abebe Kebede", specialty="Cardiology")


@pytest.fixture
def patient(make_user):
    return make_user("PATIENT", name="Sara Tesfaye")


@pytest.fixture
def admin(make_user):
    return make_user("ADMIN", name="Site Admin")


def as_caller(user) -> Caller:
    return Caller.from_user(user)


@pytest.fixture
def make_slot(db):
    """Factory for availability slots, ``hours`` from a fixed future base time."""
    base = datetime(2030, 1, 7, 9, 0)

    def _make(doctor, hours=0, duration_minutes=30, is_booked=False):
        start = base + timedelta(hours=hours)
        slot = DoctorAvailability(
            doctor_id=doctor.id,
            start_time=start,
            end_time=start + timedelta(minutes=duration_minutes),
            is_booked=is_booked,
            timezone="UTC",
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _make


@pytest.fixture
def link(db):
    """Link a doctor to a patient."""

    def _link(doctor, patient):
        db.add(DoctorPatient(doctor_id=doctor.id, patient_id=patient.id))
        db.commit()

    return _link


@pytest.fixture
def calendar_integration(db, doctor):
    integration = GoogleCalendarIntegration(
        user_id=doctor.id,
        access_token=encrypt_token("access-token"),
        refresh_token=encrypt_token("refresh-token"),
        token_expires_at=datetime.utcnow() + timedelta(hours=1),
        google_user_email="doctor@gmail.com",
        google_calendar_id="primary",
    )
    db.add(integration)
    db.commit()
    return integration


@pytest.fixture(autouse=True)
def mock_email():
    """Mock appointment emails to avoid provider calls during tests."""
    with patch(
        "telehealth.domain.appointments.service.send_appointment_request_to_doctor",
        new_callable=AsyncMock,
    ) as requested, patch(
        "telehealth.domain.appointments.service.send_appointment_confirmed_to_patient",
        new_callable=AsyncMock,
    ) as confirmed, patch(
        "telehealth.domain.appointments.service.send_appointment_cancelled_to_patient",
        new_callable=AsyncMock,
    ) as cancelled:
        yield SimpleNamespace(requested=requested, confirmed=confirmed, cancelled=cancelled)


@pytest.fixture(autouse=True)
def mock_calendar():
    """Mock Google Calendar event calls."""
    with patch(
        "telehealth.domain.appointments.service.create_meet_event", new_callable=AsyncMock
    ) as create_event, patch(
        "telehealth.domain.appointments.service.patch_event_times", new_callable=AsyncMock
    ) as patch_times:
        create_event.return_value = MEET_EVENT
        patch_times.return_value = True
        yield SimpleNamespace(create_event=create_event, patch_times=patch_times)


@pytest.fixture(autouse=True)
def mock_publish():
    """Mock realtime publishing."""
    with patch("telehealth.domain.messaging.service.publish", new_callable=MagicMock) as publish:
        publish.return_value = True
        yield publish


@pytest.fixture
def client(db):
    """TestClient bound to the test session."""
    from fastapi.testclient import TestClient

    from telehealth.database import get_db
    from telehealth.main import app

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def login():
    """Authenticate subsequent client requests as ``user``."""
    from telehealth.auth import get_current_caller
    from telehealth.main import app

    def _login(user):
        app.dependency_overrides[get_current_caller] = lambda: as_caller(user)

    return _login
