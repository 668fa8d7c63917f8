# medibook/services/notifications.py
"""
Best-effort patient notifications. Email when the patient has one,
SMS otherwise. Never raises: the outcome is a soft status dict

    {"status": "sent" | "skipped" | "failed", "channel": ..., ...}
"""
import logging
from typing import Optional

from .. import email_templates
from ..errors import SchedulingError
from .mailer import send_email
from .sms import send_sms

logger = logging.getLogger(__name__)


def send_booking_confirmation(appointment, event_link: Optional[str] = None) -> dict:
    subject, html, text = email_templates.booking_confirmation(appointment, event_link)
    sms_body = (
        f"Appointment confirmed with {appointment.doctor_name} on {appointment.date}, "
        f"{appointment.time_slot}. ID: {appointment.appointment_id}"
    )
    return _deliver(appointment.patient_email, appointment.patient_phone, subject, html, text, sms_body)


def send_reminder(appointment) -> dict:
    subject, html, text = email_templates.appointment_reminder(appointment)
    sms_body = (
        f"Reminder: appointment with {appointment.doctor_name} on {appointment.date}, "
        f"{appointment.time_slot}. ID: {appointment.appointment_id}"
    )
    return _deliver(appointment.patient_email, appointment.patient_phone, subject, html, text, sms_body)


# ------------------ internal ------------------

def _deliver(email: Optional[str], phone: Optional[str], subject: str, html: str, text: str, sms_body: str) -> dict:
    if email:
        channel, to = "email", email
    elif phone:
        channel, to = "sms", phone
    else:
        logger.warning("No patient email or phone; skipping notification")
        return {"status": "skipped", "reason": "No patient contact"}

    try:
        if channel == "email":
            info = send_email(to, subject, html, text)
        else:
            info = send_sms(to, sms_body)
    except SchedulingError as e:
        # ConfigurationError and UpstreamDegraded are both soft here
        logger.warning("Notification failed: channel=%s to=%s err=%s", channel, to, e.detail)
        return {"status": "failed", "channel": channel, "to": to, "error": e.detail}

    return {"status": "sent", "channel": channel, "to": to, **info}
