"""
Caller context and role policy

Every service operation receives an explicit ``Caller`` and checks it against
``OPERATION_ROLES`` through ``authorize`` before touching the database.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class Role(str, Enum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Caller:
    """Authenticated user performing an operation"""

    id: str
    role: Role
    name: str = ""
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user) -> "Caller":
        return cls(id=user.id, role=Role(user.role), name=user.name or "", email=user.email)

    @property
    def is_doctor(self) -> bool:
        return self.role == Role.DOCTOR

    @property
    def is_patient(self) -> bool:
        return self.role == Role.PATIENT

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


ALL_ROLES = frozenset(Role)
STAFF = frozenset({Role.DOCTOR, Role.ADMIN})

# operation name -> (allowed roles, message shown when the caller's role is not allowed)
OPERATION_ROLES: dict[str, tuple[frozenset, str]] = {
    # Availability
    "availability.create": (STAFF, "Only doctors can publish availability"),
    "availability.delete": (STAFF, "Only doctors can delete availability"),
    "availability.time_off": (STAFF, "Only doctors can manage time off"),
    # Appointments
    "appointment.book": (frozenset({Role.PATIENT}), "Only patients can book appointments"),
    "appointment.confirm": (frozenset({Role.DOCTOR}), "Only doctors can confirm appointments"),
    "appointment.cancel": (ALL_ROLES, "You cannot cancel appointments"),
    "appointment.reschedule": (
        frozenset({Role.PATIENT, Role.DOCTOR}),
        "Only patients or doctors can request a reschedule",
    ),
    "appointment.approve_reschedule": (STAFF, "Only doctors or admins can approve reschedules"),
    "appointment.mark_completed": (STAFF, "Only doctors or admins can complete appointments"),
    "appointment.mark_no_show": (STAFF, "Only doctors or admins can mark no-shows"),
    # Ratings
    "rating.create": (frozenset({Role.PATIENT}), "Only patients can rate"),
    "rating.list_for_patient": (frozenset({Role.PATIENT}), "Only patients can view doctors to rate."),
    "rating.edit": (frozenset({Role.ADMIN}), "Only admins can edit reviews"),
    "rating.delete": (frozenset({Role.ADMIN}), "Only admins can delete reviews"),
    # Medical records
    "records.write": (frozenset({Role.DOCTOR}), "Only doctors can manage medical records"),
    # Prescriptions
    "prescription.write": (frozenset({Role.DOCTOR}), "Only doctors can manage prescriptions"),
    "prescription.list_for_doctor": (
        frozenset({Role.DOCTOR}),
        "Only doctors can view their prescriptions",
    ),
    "prescription.list_for_patient": (
        frozenset({Role.PATIENT}),
        "Only patients can view their prescriptions",
    ),
    # Users
    "users.patients": (frozenset({Role.DOCTOR}), "Only doctors can view their patients"),
    "users.admin": (frozenset({Role.ADMIN}), "Admin access required"),
    # Calendar integration
    "calendar.connect": (frozenset({Role.DOCTOR}), "Only doctors can connect a calendar"),
}


def authorize(caller: Caller, operation: str, message: Optional[str] = None) -> Caller:
    """Raise 403 unless the caller's role is allowed to run ``operation``"""
    allowed, default_message = OPERATION_ROLES[operation]
    if caller.role not in allowed:
        logger.warning(f"⚠️ {caller.role.value} {caller.id} denied for {operation}")
        raise HTTPException(status_code=403, detail=message or default_message)
    return caller
