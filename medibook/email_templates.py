# medibook/email_templates.py
"""
Outbound message bodies. Every builder returns (subject, html, text).
"""
from __future__ import annotations
from datetime import datetime
from html import escape
from typing import Optional

from .config import settings


def _v(value) -> str:
    return str(value) if value not in (None, "") else "-"


def booking_description(appointment, doctor_instructions: Optional[str] = None) -> tuple[str, str]:
    """Plain and HTML description of a booking, also used as the calendar event body."""
    now = datetime.utcnow().isoformat()
    attachment = settings.APPOINTMENT_ATTACHMENT_URL
    rows = [
        ("Appointment ID", appointment.appointment_id),
        ("Patient Name", appointment.patient_name),
        ("Patient Email", appointment.patient_email),
        ("Patient Phone", appointment.patient_phone),
        ("Patient ID", appointment.patient_id),
        ("Doctor", appointment.doctor_name),
        ("Date", appointment.date),
        ("Time", appointment.time_slot),
        ("Appointment Type", appointment.appointment_type or "In-Person"),
        ("Payment Status", appointment.payment_status or "pending"),
        ("Reason / Symptoms", appointment.reason),
        ("Doctor Notes", doctor_instructions),
        ("Booked Through", settings.BOOKING_CHANNEL),
        ("Booking Time", now),
    ]
    width = max(len(label) for label, _ in rows)
    plain = "\n".join(f"{label.ljust(width)}: {_v(value)}" for label, value in rows)
    if attachment:
        plain += f"\n{'Attachment'.ljust(width)}: {attachment}"

    cells = "\n".join(
        f"<tr><td><strong>{escape(label)}</strong></td><td>{escape(_v(value))}</td></tr>"
        for label, value in rows
    )
    html = (
        "<h3>Appointment Details</h3>"
        '<table border="0" cellpadding="4" cellspacing="0" '
        'style="border-collapse:collapse;font-family:Arial,Helvetica,sans-serif;">'
        f"{cells}</table>"
    )
    if attachment:
        html += f'<p><strong>Attachment:</strong> <a href="{escape(attachment)}">View attachment</a></p>'
    return plain, html


def _footer_html() -> str:
    return (
        '<hr style="margin: 30px 0; border: none; border-top: 1px solid #e0e0e0;">'
        '<p style="color: #7f8c8d; font-size: 12px; text-align: center;">'
        f"This is an automated message from {escape(settings.BOOKING_CHANNEL)}.<br>"
        "Please do not reply to this email.</p>"
    )


def booking_confirmation(appointment, event_link: Optional[str] = None) -> tuple[str, str, str]:
    plain, table = booking_description(appointment)
    subject = f"Appointment Confirmed: {appointment.doctor_name} on {appointment.date}"
    name = escape(appointment.patient_name or "there")
    button = ""
    if event_link:
        button = (
            '<div style="margin-top: 30px; text-align: center;">'
            f'<a href="{escape(event_link)}" target="_blank" '
            'style="background-color: #3498db; color: white; padding: 12px 24px; '
            'text-decoration: none; border-radius: 5px; display: inline-block; font-weight: bold;">'
            "View in Google Calendar</a></div>"
        )
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        '<h2 style="color: #2c3e50; border-bottom: 2px solid #3498db; padding-bottom: 10px;">'
        "Appointment Confirmation</h2>"
        f"<p>Hi <strong>{name}</strong>,</p>"
        f"<p>Your appointment has been successfully confirmed with <strong>{escape(appointment.doctor_name or '')}</strong>.</p>"
        f"{table}{button}{_footer_html()}</div>"
    )
    text = (
        f"Hi {appointment.patient_name or 'there'},\n\n"
        f"Your appointment has been successfully confirmed with {appointment.doctor_name}.\n\n"
        f"{plain}\n"
    )
    if event_link:
        text += f"\nView in Google Calendar: {event_link}\n"
    text += f"\n---\nThis is an automated message from {settings.BOOKING_CHANNEL}. Please do not reply to this email."
    return subject, html, text


def appointment_reminder(appointment) -> tuple[str, str, str]:
    subject = f"Reminder: {appointment.doctor_name} on {appointment.date} at {appointment.time_slot}"
    html = (
        '<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">'
        f"<p>Hi <strong>{escape(appointment.patient_name or 'there')}</strong>,</p>"
        f"<p>This is a reminder of your appointment with <strong>{escape(appointment.doctor_name or '')}</strong> "
        f"on <strong>{escape(appointment.date)}</strong>, <strong>{escape(appointment.time_slot)}</strong>.</p>"
        f"<p>Appointment ID: {escape(appointment.appointment_id)}</p>"
        f"{_footer_html()}</div>"
    )
    text = (
        f"Hi {appointment.patient_name or 'there'},\n\n"
        f"Reminder: your appointment with {appointment.doctor_name} is on {appointment.date}, "
        f"{appointment.time_slot}.\nAppointment ID: {appointment.appointment_id}\n"
    )
    return subject, html, text


def one_time_passcode(code: str, patient_name: Optional[str], ttl_minutes: int, max_attempts: int) -> tuple[str, str, str]:
    clinic = settings.CLINIC_NAME
    name = patient_name or "there"
    subject = f"Your OTP for Registration - {clinic}"
    html = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; background-color: #f9f9f9;">
  <div style="background-color: #4CAF50; color: white; padding: 20px; text-align: center; border-radius: 10px 10px 0 0;">
    <h1 style="margin: 0;">OTP Verification</h1>
  </div>
  <div style="background-color: white; padding: 30px; border-radius: 0 0 10px 10px;">
    <p style="font-size: 16px;">Hello <strong>{escape(name)}</strong>,</p>
    <p>Thank you for registering with {escape(clinic)}. Please verify your contact using the OTP below:</p>
    <div style="background-color: #f0f0f0; padding: 25px; border-radius: 8px; margin: 30px 0; text-align: center;">
      <p style="margin: 0; font-size: 14px; color: #666;">Your One-Time Password (OTP) is:</p>
      <h2 style="margin: 20px 0 0 0; font-size: 48px; letter-spacing: 5px; color: #4CAF50;">{escape(code)}</h2>
      <p style="margin: 15px 0 0 0; font-size: 12px; color: #999;">This OTP will expire in {ttl_minutes} minutes</p>
    </div>
    <ul style="font-size: 14px;">
      <li>Never share this OTP with anyone</li>
      <li>{escape(clinic)} staff will never ask for your OTP</li>
      <li>Maximum {max_attempts} verification attempts allowed</li>
    </ul>
    <p style="font-size: 14px; color: #666;">If you didn't request this, please ignore this email.</p>
    <p style="color: #666; font-size: 12px; text-align: center;">For any queries, contact: {escape(settings.SUPPORT_EMAIL)}</p>
  </div>
</div>
"""
    text = (
        f"{clinic} - OTP Verification\n\n"
        f"Hello {name},\n\n"
        f"OTP: {code}\n\n"
        f"This OTP will expire in {ttl_minutes} minutes. Maximum {max_attempts} verification attempts allowed.\n"
        "Never share this OTP with anyone.\n\n"
        f"For any queries, contact: {settings.SUPPORT_EMAIL}"
    )
    return subject, html, text
