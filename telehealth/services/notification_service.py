"""
Notification Service
Sends the email for a lifecycle event and records the attempt
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from ..models import Notification, User

logger = logging.getLogger(__name__)


async def notify_user(
    db: Session,
    user: User,
    title: str,
    message: str,
    email_func,
    email_kwargs: dict,
    appointment_id: Optional[str] = None,
) -> Notification:
    """
    Email the user (when they have an address) and add a Notification row to the
    caller's transaction. Email errors propagate so the surrounding operation aborts.

    The row is SENT only when the provider accepted the email; a skipped send
    (no address, or no provider configured) is recorded as FAILED with the reason.
    """
    status, error, sent_at = "SENT", None, datetime.utcnow()

    if user.email:
        logger.info(f"📧 Sending '{title}' email to {user.email}")
        result = await email_func(**email_kwargs)
        if isinstance(result, dict) and result.get("skipped"):
            status, error, sent_at = "FAILED", "Email provider not configured", None
    else:
        logger.debug(f"⚠️ No email address for '{title}' notification to user {user.id}")
        status, error, sent_at = "FAILED", "User has no email address", None

    notification = Notification(
        user_id=user.id,
        appointment_id=appointment_id,
        type="EMAIL",
        title=title,
        message=message,
        status=status,
        error=error,
        sent_at=sent_at,
    )
    db.add(notification)
    return notification
