"""
Email Service using Resend
Provides email functionality using MJML templates for responsive design
"""

import logging
from datetime import datetime
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import EMAIL_FROM_ADDRESS, RESEND_API_KEY
from .email_templates import (
    appointment_cancelled_template,
    appointment_confirmed_template,
    appointment_requested_template,
)

logger = logging.getLogger(__name__)

resend.api_key = RESEND_API_KEY


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        # mjml_to_html returns a dict-like result with 'html' and 'errors'
        if isinstance(result, dict):
            if result.get("errors"):
                logger.warning(f"MJML compilation warnings: {result['errors']}")
            return result.get("html", "")
        return getattr(result, "html", str(result))
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise Exception(f"Failed to compile MJML template: {str(e)}") from e


async def send_email(
    to: Union[str, list[str]],
    subject: str,
    mjml_content: str,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email through Resend

    Args:
        to: Recipient email(s)
        subject: Email subject line
        mjml_content: MJML template content (will be compiled to HTML)
        from_address: Optional custom from address

    Returns:
        Send response dict, or {"skipped": True} when no provider is configured
    """
    recipients = [to] if isinstance(to, str) else to

    if not RESEND_API_KEY:
        logger.warning(f"⚠️ RESEND_API_KEY not configured, skipping email to {recipients}: {subject}")
        return {"skipped": True}

    html_content = compile_mjml_to_html(mjml_content)

    try:
        logger.info(f"📧 Sending email via Resend to: {to}")
        response = resend.Emails.send(
            {
                "from": from_address or EMAIL_FROM_ADDRESS,
                "to": recipients,
                "subject": subject,
                "html": html_content,
            }
        )
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return response
    except Exception as e:
        logger.error(f"❌ Email send error to {recipients}: {e}")
        raise Exception(f"Failed to send email: {str(e)}") from e


def format_schedule(start: datetime, end: datetime) -> tuple[str, str]:
    """Human readable (date, time range) for email bodies"""
    return start.strftime("%A, %B %d, %Y"), f"{start.strftime('%I:%M %p')} - {end.strftime('%I:%M %p')}"


# ============================================
# Appointment lifecycle emails
# ============================================


async def send_appointment_request_to_doctor(
    doctor_email: str,
    doctor_name: str,
    patient_name: str,
    start: datetime,
    end: datetime,
    appointment_type: str,
    reason: Optional[str] = None,
) -> dict:
    """Notify the doctor that a patient booked one of their slots"""
    scheduled_date, scheduled_time = format_schedule(start, end)
    mjml_content = appointment_requested_template(
        doctor_name=doctor_name,
        patient_name=patient_name,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        appointment_type=appointment_type,
        reason=reason,
    )
    return await send_email(
        to=doctor_email,
        subject=f"New Appointment Request: {patient_name} - {scheduled_date}",
        mjml_content=mjml_content,
    )


async def send_appointment_confirmed_to_patient(
    patient_email: str,
    patient_name: str,
    doctor_name: str,
    start: datetime,
    end: datetime,
    meet_link: str,
) -> dict:
    """Send the confirmed appointment and its meeting link to the patient"""
    scheduled_date, scheduled_time = format_schedule(start, end)
    mjml_content = appointment_confirmed_template(
        patient_name=patient_name,
        doctor_name=doctor_name,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        meet_link=meet_link,
    )
    return await send_email(
        to=patient_email,
        subject=f"Appointment Confirmed with Dr. {doctor_name}",
        mjml_content=mjml_content,
    )


async def send_appointment_cancelled_to_patient(
    patient_email: str,
    patient_name: str,
    doctor_name: str,
    start: datetime,
    end: datetime,
    reason: Optional[str] = None,
) -> dict:
    """Tell the patient their doctor cancelled the appointment"""
    scheduled_date, scheduled_time = format_schedule(start, end)
    mjml_content = appointment_cancelled_template(
        patient_name=patient_name,
        doctor_name=doctor_name,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        reason=reason,
    )
    return await send_email(
        to=patient_email,
        subject=f"Appointment Cancelled - {scheduled_date}",
        mjml_content=mjml_content,
    )
