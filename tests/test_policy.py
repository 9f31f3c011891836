"""Tests for the caller policy and the appointment state machine."""

import pytest
from fastapi import HTTPException

from telehealth.domain.appointments.transitions import (
    TERMINAL_STATUSES,
    AppointmentStatus,
    can_transition,
    ensure_transition,
)
from telehealth.policy import Caller, Role, authorize
from telehealth.shared.pagination import build_pagination
from telehealth.shared.validators import naive_utc
from telehealth.utils.sanitization import blank_to_none


class TestAuthorize:
    """Tests for role checks."""

    def test_allowed_role_passes(self):
        """Test a patient may book."""
        caller = Caller(id="p1", role=Role.PATIENT)
        assert authorize(caller, "appointment.book") is caller

    def test_denied_role_raises_403(self):
        """Test a doctor may not book."""
        caller = Caller(id="d1", role=Role.DOCTOR)
        with pytest.raises(HTTPException) as exc:
            authorize(caller, "appointment.book")
        assert exc.value.status_code == 403
        assert exc.value.detail == "Only patients can book appointments"

    def test_custom_message(self):
        """Test an explicit message overrides the table message."""
        caller = Caller(id="p1", role=Role.PATIENT)
        with pytest.raises(HTTPException) as exc:
            authorize(caller, "users.patients", "Nope")
        assert exc.value.detail == "Nope"

    def test_caller_role_flags(self):
        """Test role helper properties."""
        caller = Caller(id="a1", role=Role.ADMIN)
        assert caller.is_admin
        assert not caller.is_doctor
        assert not caller.is_patient


class TestTransitions:
    """Tests for appointment state transitions."""

    @pytest.mark.parametrize(
        "current,target",
        [
            ("PENDING", "CONFIRMED"),
            ("PENDING", "CANCELED"),
            ("CONFIRMED", "CONFIRMED"),
            ("CONFIRMED", "CANCELED"),
            ("CONFIRMED", "COMPLETED"),
            ("CONFIRMED", "NO_SHOW"),
        ],
    )
    def test_allowed_edges(self, current, target):
        """Test every edge of the state machine is allowed."""
        assert can_transition(current, target)

    @pytest.mark.parametrize(
        "current,target",
        [
            ("PENDING", "COMPLETED"),
            ("PENDING", "NO_SHOW"),
            ("CANCELED", "CONFIRMED"),
            ("COMPLETED", "CANCELED"),
            ("NO_SHOW", "CONFIRMED"),
        ],
    )
    def test_rejected_edges(self, current, target):
        """Test transitions outside the machine are rejected."""
        assert not can_transition(current, target)

    def test_terminal_statuses_have_no_exits(self):
        """Test terminal statuses cannot move anywhere."""
        for status in TERMINAL_STATUSES:
            for target in AppointmentStatus:
                assert not can_transition(status, target.value)

    def test_ensure_transition_raises_409(self):
        """Test ensure_transition raises a conflict with the given message."""
        with pytest.raises(HTTPException) as exc:
            ensure_transition("CANCELED", "CONFIRMED", "Cannot confirm an appointment in CANCELED status")
        assert exc.value.status_code == 409
        assert exc.value.detail == "Cannot confirm an appointment in CANCELED status"


class TestHelpers:
    """Tests for shared helpers."""

    def test_pagination_rounds_up(self):
        """Test totalPages is the ceiling of total / pageSize."""
        pagination = build_pagination(total=21, page=1, page_size=10)
        assert pagination.totalPages == 3

    def test_pagination_empty(self):
        """Test an empty listing has zero pages."""
        assert build_pagination(total=0, page=1, page_size=10).totalPages == 0

    def test_naive_utc_converts_aware(self):
        """Test offset-aware datetimes become naive UTC."""
        from datetime import datetime, timedelta, timezone

        aware = datetime(2030, 1, 1, 12, 0, tzinfo=timezone(timedelta(hours=3)))
        assert naive_utc(aware) == datetime(2030, 1, 1, 9, 0)

    def test_blank_to_none(self):
        """Test blank text is stored as NULL and other text is escaped."""
        assert blank_to_none("   ") is None
        assert blank_to_none(None) is None
        assert blank_to_none("  <b>ok</b> ") == "&lt;b&gt;ok&lt;/b&gt;"
