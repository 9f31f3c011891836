"""Appointment state machine"""

import logging
from enum import Enum
from typing import Optional

from fastapi import HTTPException

logger = logging.getLogger(__name__)


class AppointmentStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"
    NO_SHOW = "NO_SHOW"


# current status -> statuses it may move to; anything absent is terminal
TRANSITIONS: dict[str, frozenset] = {
    AppointmentStatus.PENDING.value: frozenset(
        {AppointmentStatus.CONFIRMED.value, AppointmentStatus.CANCELED.value}
    ),
    AppointmentStatus.CONFIRMED.value: frozenset(
        {
            AppointmentStatus.CONFIRMED.value,  # idempotent re-confirm
            AppointmentStatus.CANCELED.value,
            AppointmentStatus.COMPLETED.value,
            AppointmentStatus.NO_SHOW.value,
        }
    ),
}

TERMINAL_STATUSES = frozenset(
    {
        AppointmentStatus.COMPLETED.value,
        AppointmentStatus.CANCELED.value,
        AppointmentStatus.NO_SHOW.value,
    }
)


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str, target: str, message: Optional[str] = None) -> None:
    """Raise 409 unless ``current -> target`` is an edge of the state machine"""
    if not can_transition(current, target):
        logger.warning(f"⚠️ Rejected transition {current} -> {target}")
        raise HTTPException(
            status_code=409,
            detail=message or f"Cannot move an appointment from {current} to {target}",
        )
