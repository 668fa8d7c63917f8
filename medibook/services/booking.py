# medibook/services/booking.py
from __future__ import annotations
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import email_templates, models
from ..availability import hhmm_to_minutes, weekday_name
from ..config import settings
from ..errors import ConflictError, NotFoundError, SchedulingError, ValidationError
from . import google_calendar, notifications
from .patients import upsert_patient
from .slots import format_slot_label, overlaps, parse_date, parse_slot_label

logger = logging.getLogger(__name__)


@dataclass
class BookingRequest:
    doctor_id: str
    patient_name: str
    date: str
    time_slot: str
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    reason: Optional[str] = None
    appointment_type: Optional[str] = None
    payment_status: Optional[str] = None


@dataclass
class BookingResult:
    appointment: models.Appointment
    calendar_status: dict = field(default_factory=dict)
    notification_status: dict = field(default_factory=dict)


def placeholder_event_id() -> str:
    return f"local-{uuid.uuid4().hex[:12]}"


def find_conflicts(db: Session, doctor_id: str, start: datetime, end: datetime) -> List[models.Appointment]:
    """Non-cancelled appointments of the doctor overlapping [start, end)."""
    s, e = models.to_naive_local(start), models.to_naive_local(end)
    candidates = (
        db.query(models.Appointment)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.status != models.AppointmentStatus.cancelled)
        .filter(models.Appointment.start_at < e)
        .filter(models.Appointment.end_at > s)
        .all()
    )
    return [a for a in candidates if overlaps(s, e, a.start_at, a.end_at)]


def _lock_doctor(db: Session, doctor_id: str) -> models.Doctor:
    """
    Touches the doctor row before anything is read for the booking. The
    UPDATE takes the row lock on Postgres and the database write lock on
    SQLite, so a second booking for the same doctor waits here until the
    first one commits or rolls back and then sees its appointment.
    """
    touched = (
        db.query(models.Doctor)
        .filter(models.Doctor.doctor_id == doctor_id)
        .update({models.Doctor.updated_at: datetime.utcnow()}, synchronize_session=False)
    )
    if not touched:
        raise NotFoundError("Doctor not found")
    return db.query(models.Doctor).filter(models.Doctor.doctor_id == doctor_id).one()


def _check_working_window(doctor: models.Doctor, start: datetime, end: datetime) -> None:
    day = start.date()
    hours = doctor.weekly_availability.for_date(day)
    if not hours.available:
        raise ValidationError(f"Doctor is not available on {weekday_name(day)}.")
    midnight = models.local_tz().localize(datetime.combine(day, time(0, 0)))
    open_at = midnight + timedelta(minutes=hhmm_to_minutes(hours.start))
    close_at = midnight + timedelta(minutes=hhmm_to_minutes(hours.end))
    if start < open_at or end > close_at:
        raise ValidationError(f"Time slot is outside working hours ({hours.start}-{hours.end}).")
    width = timedelta(minutes=settings.SLOT_MINUTES)
    if end - start != width or (start - open_at) % width:
        raise ValidationError(f"Time slot must be one of the {settings.SLOT_MINUTES}-minute slots starting at {hours.start}.")


def _sync_calendar(doctor: models.Doctor, appt: models.Appointment) -> tuple[dict, Optional[str]]:
    """Best-effort event insert. Returns (soft status, htmlLink)."""
    if not doctor.calendar_id:
        appt.google_event_id = placeholder_event_id()
        return {"status": "skipped", "reason": "Doctor has no calendarId", "eventId": appt.google_event_id}, None

    plain, _ = email_templates.booking_description(appt)
    try:
        event = google_calendar.create_event(
            doctor.calendar_id,
            summary=f"Consultation - {doctor.name}",
            start=appt.start_date_time,
            end=appt.end_date_time,
            description=plain,
            attendees=[doctor.email, appt.patient_email],
            timezone=doctor.timezone,
        )
    except SchedulingError as e:
        appt.google_event_id = placeholder_event_id()
        logger.warning("Calendar sync failed (book): appt_id=%s err=%s", appt.appointment_id, e.detail)
        return {"status": "failed", "error": e.detail, "eventId": appt.google_event_id}, None
    except Exception as e:
        appt.google_event_id = placeholder_event_id()
        logger.exception("Calendar sync failed (book): appt_id=%s err=%s", appt.appointment_id, e)
        return {"status": "failed", "error": str(e), "eventId": appt.google_event_id}, None

    appt.google_event_id = event.get("id") or placeholder_event_id()
    return {"status": "created", "eventId": appt.google_event_id, "htmlLink": event.get("htmlLink")}, event.get("htmlLink")


def book_appointment(db: Session, req: BookingRequest) -> BookingResult:
    """
    Re-validates the chosen slot against stored appointments, persists a
    confirmed appointment, then best-effort creates the calendar event and
    notifies the patient. Calendar and notification outcomes never undo
    the booking; they come back as soft statuses.
    """
    # Validation first: nothing is written on bad input
    day = parse_date(req.date)
    start, end = parse_slot_label(day, req.time_slot)
    if not (req.patient_name or "").strip():
        raise ValidationError("Patient name is required.")
    if not (req.patient_email or "").strip() and not (req.patient_phone or "").strip():
        raise ValidationError("Patient email or phone is required.")

    try:
        doctor = _lock_doctor(db, req.doctor_id)
        _check_working_window(doctor, start, end)

        patient = upsert_patient(db, req.patient_name, req.patient_email, req.patient_phone)

        if find_conflicts(db, doctor.doctor_id, start, end):
            raise ConflictError("Slot no longer available")

        appt = models.Appointment(
            appointment_id=models.new_business_id("A"),
            doctor_id=doctor.doctor_id,
            patient_id=patient.patient_id,
            doctor_name=doctor.name,
            doctor_specialty=doctor.specialty,
            patient_name=patient.name,
            patient_email=patient.email,
            patient_phone=patient.phone,
            date=day.isoformat(),
            start_at=models.to_naive_local(start),
            end_at=models.to_naive_local(end),
            time_slot=format_slot_label(start, end),
            status=models.AppointmentStatus.confirmed,
            payment_status=req.payment_status or "pending",
            reason=req.reason,
            appointment_type=req.appointment_type or "In-Person",
        )
        db.add(appt)
        db.flush()
        db.commit()
    except ConflictError:
        db.rollback()
        logger.info("Booking conflict: doctor=%s %s %s", req.doctor_id, day, req.time_slot)
        raise
    except SchedulingError:
        db.rollback()
        raise
    except IntegrityError as e:
        # Another request committed the same slot between our check and insert
        db.rollback()
        logger.warning("Booking lost race: doctor=%s %s %s err=%s", req.doctor_id, day, req.time_slot, e.orig)
        raise ConflictError("Slot no longer available")

    logger.info("Appointment confirmed in DB: appt_id=%s doctor=%s patient=%s start=%s",
                appt.appointment_id, doctor.doctor_id, patient.patient_id, appt.start_at.isoformat())

    calendar_status, event_link = _sync_calendar(doctor, appt)
    db.commit()

    notification_status = notifications.send_booking_confirmation(appt, event_link)

    return BookingResult(
        appointment=appt,
        calendar_status=calendar_status,
        notification_status=notification_status,
    )


def cancel_appointment(db: Session, appointment_id: str) -> models.Appointment:
    """
    Logical delete: status flips to cancelled and the slot is released.
    The Google Calendar event is left untouched.
    """
    appt = db.query(models.Appointment).filter(models.Appointment.appointment_id == appointment_id).first()
    if not appt:
        raise NotFoundError("Appointment not found")
    if appt.status == models.AppointmentStatus.cancelled:
        return appt
    appt.status = models.AppointmentStatus.cancelled
    appt.cancelled_at = datetime.utcnow()
    db.commit()
    logger.info("Appointment cancelled: appt_id=%s", appointment_id)
    return appt
