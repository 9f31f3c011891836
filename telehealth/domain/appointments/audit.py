"""Appointment audit trail"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentEvent
from ...policy import Caller


def record_event(
    db: Session,
    appointment: Appointment,
    old_status: Optional[str],
    new_status: str,
    caller: Caller,
    note: Optional[str] = None,
) -> AppointmentEvent:
    """Append one event to the appointment's history inside the open transaction"""
    event = AppointmentEvent(
        appointment_id=appointment.id,
        old_status=old_status,
        new_status=new_status,
        changed_by=caller.id,
        actor_role=caller.role.value,
        note=note,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    return event
