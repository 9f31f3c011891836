"""
MJML Email Templates
Appointment lifecycle emails, compiled to HTML by email_service
"""

from typing import Optional

from .config import FRONTEND_URL

# App theme colors - Teal/Slate color scheme
THEME = {
    "primary": "#14b8a6",
    "primary_dark": "#0d9488",
    "primary_light": "#ccfbf1",
    "background": "#f8fafc",
    "card_bg": "#ffffff",
    "text_primary": "#0f172a",
    "text_secondary": "#334155",
    "text_muted": "#64748b",
    "border": "#e2e8f0",
    "success": "#14b8a6",
    "warning": "#f59e0b",
    "danger": "#ef4444",
}


def get_base_template(
    title: str,
    preview_text: str,
    content_sections: str,
    cta_url: Optional[str] = None,
    cta_label: Optional[str] = None,
) -> str:
    """Base MJML template wrapper for all emails"""

    cta_section = ""
    if cta_url and cta_label:
        cta_section = f"""
        <mj-section padding="20px 0">
          <mj-column>
            <mj-button
              href="{cta_url}"
              background-color="{THEME['primary']}"
              color="#ffffff"
              font-weight="600"
              border-radius="8px"
              padding="18px 40px"
              font-size="16px">
              {cta_label}
            </mj-button>
          </mj-column>
        </mj-section>
        """

    return f"""
    <mjml>
      <mj-head>
        <mj-title>{title}</mj-title>
        <mj-preview>{preview_text}</mj-preview>
        <mj-attributes>
          <mj-all font-family="-apple-system, BlinkMacSystemFont, 'Segoe UI', 'Helvetica Neue', Arial, sans-serif" />
          <mj-text font-size="16px" line-height="1.6" color="{THEME['text_secondary']}" />
        </mj-attributes>
      </mj-head>
      <mj-body background-color="{THEME['background']}">
        <mj-section background-color="#ffffff" padding="40px 40px 48px 40px">
          <mj-column>
            <mj-text font-size="24px" font-weight="600" color="{THEME['text_primary']}" line-height="1.3" padding="0 0 16px 0">
              {title}
            </mj-text>

            {content_sections}
          </mj-column>
        </mj-section>

        {cta_section}

        <!-- Footer -->
        <mj-section padding="32px 20px">
          <mj-column>
            <mj-text align="center" font-size="13px" color="#94a3b8" padding="0">
              You're receiving this because you have an account with Telehealth.
            </mj-text>
          </mj-column>
        </mj-section>
      </mj-body>
    </mjml>
    """


def _schedule_block(scheduled_date: str, scheduled_time: str, heading: str) -> str:
    return f"""
    <mj-text font-size="16px" font-weight="600" color="{THEME['primary']}" padding="20px 0 12px 0">
      📅 {heading}
    </mj-text>

    <mj-text font-size="15px" color="{THEME['text_primary']}" padding="0">
      <strong>Date:</strong> {scheduled_date}
    </mj-text>

    <mj-text font-size="15px" color="{THEME['text_primary']}" padding="0 0 20px 0">
      <strong>Time:</strong> {scheduled_time}
    </mj-text>
    """


def appointment_requested_template(
    doctor_name: str,
    patient_name: str,
    scheduled_date: str,
    scheduled_time: str,
    appointment_type: str,
    reason: Optional[str] = None,
) -> str:
    """New appointment request notification for the doctor"""
    reason_block = ""
    if reason:
        reason_block = f"""
        <mj-text color="{THEME['text_muted']}" font-size="14px" padding="0 0 20px 0">
          Reason for visit: {reason}
        </mj-text>
        """

    content = f"""
    <mj-text>
      Hi {doctor_name},
    </mj-text>

    <mj-text>
      <strong>{patient_name}</strong> has requested a {appointment_type.lower().replace("_", " ")} appointment.
    </mj-text>

    {_schedule_block(scheduled_date, scheduled_time, "Requested Time")}
    {reason_block}

    <mj-text>
      Confirm the appointment to send the patient a meeting link.
    </mj-text>
    """

    return get_base_template(
        title="New Appointment Request",
        preview_text=f"{patient_name} requested an appointment on {scheduled_date}",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/doctor/appointments",
        cta_label="Review Request",
    )


def appointment_confirmed_template(
    patient_name: str,
    doctor_name: str,
    scheduled_date: str,
    scheduled_time: str,
    meet_link: str,
) -> str:
    """Appointment confirmation with the video meeting link for the patient"""
    content = f"""
    <mj-text>
      Hi {patient_name},
    </mj-text>

    <mj-text>
      Dr. {doctor_name} has confirmed your appointment.
    </mj-text>

    {_schedule_block(scheduled_date, scheduled_time, "Appointment Details")}

    <mj-text color="{THEME['text_muted']}" font-size="14px">
      Join the consultation using the link below a few minutes before it starts.
    </mj-text>
    """

    return get_base_template(
        title="Your Appointment is Confirmed",
        preview_text=f"Appointment with Dr. {doctor_name} on {scheduled_date}",
        content_sections=content,
        cta_url=meet_link,
        cta_label="Join Meeting",
    )


def appointment_cancelled_template(
    patient_name: str,
    doctor_name: str,
    scheduled_date: str,
    scheduled_time: str,
    reason: Optional[str] = None,
) -> str:
    """Cancellation notice for the patient when the doctor cancels"""
    reason_block = ""
    if reason:
        reason_block = f"""
        <mj-text color="{THEME['text_muted']}" font-size="14px" padding="0 0 20px 0">
          Reason: {reason}
        </mj-text>
        """

    content = f"""
    <mj-text>
      Hi {patient_name},
    </mj-text>

    <mj-text>
      Unfortunately Dr. {doctor_name} had to cancel your appointment.
    </mj-text>

    {_schedule_block(scheduled_date, scheduled_time, "Cancelled Appointment")}
    {reason_block}

    <mj-text>
      You can book a new time from the doctor's availability.
    </mj-text>
    """

    return get_base_template(
        title="Appointment Cancelled",
        preview_text=f"Your appointment on {scheduled_date} was cancelled",
        content_sections=content,
        cta_url=f"{FRONTEND_URL}/patient/appointments",
        cta_label="Book Again",
    )
