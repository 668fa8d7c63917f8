# medibook/services/slots.py
from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, List, Optional, Sequence

from sqlalchemy.orm import Session

from ..availability import hhmm_to_minutes, weekday_name
from ..config import settings
from ..errors import UpstreamDegraded, ValidationError
from .. import models
from . import google_calendar
from .google_calendar import BusyInterval

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Slot:
    start: datetime
    end: datetime
    available: bool = True

    @property
    def label(self) -> str:
        return format_slot_label(self.start, self.end)

    def to_dict(self) -> dict:
        return {
            "startTime": self.start.strftime("%H:%M"),
            "endTime": self.end.strftime("%H:%M"),
            "label": self.label,
            "startISO": self.start.isoformat(),
            "endISO": self.end.isoformat(),
            "available": self.available,
        }


# ====== Overlap (half-open) ======
def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """[a_start, a_end) vs [b_start, b_end). Touching endpoints do not overlap."""
    return a_start < b_end and a_end > b_start


# ====== Label ⇄ instants ======
_LABEL = re.compile(
    r"^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*[-–]\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])?\s*$"
)


def format_slot_label(start: datetime, end: datetime) -> str:
    """09:30 AM - 10:00 AM"""
    return f"{start.strftime('%I:%M %p')} - {end.strftime('%I:%M %p')}"


def _to_24h(hour: int, minute: int, ampm: Optional[str]) -> tuple[int, int]:
    if ampm:
        if not 1 <= hour <= 12:
            raise ValueError("hour out of range")
        ampm = ampm.upper()
        if ampm == "PM" and hour != 12:
            hour += 12
        if ampm == "AM" and hour == 12:
            hour = 0
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError("time out of range")
    return hour, minute


def parse_slot_label(day: date, label: str) -> tuple[datetime, datetime]:
    """
    Inverse of format_slot_label. Also accepts 24h '09:30 - 10:00'.
    Returns aware instants at the clinic offset.
    """
    m = _LABEL.match(label or "")
    if not m:
        raise ValidationError(f"Invalid time slot '{label}'. Use 'HH:MM AM - HH:MM PM'.")
    try:
        sh, sm = _to_24h(int(m.group(1)), int(m.group(2)), m.group(3))
        eh, em = _to_24h(int(m.group(4)), int(m.group(5)), m.group(6))
    except ValueError:
        raise ValidationError(f"Invalid time slot '{label}'.")

    tz = models.local_tz()
    start = tz.localize(datetime.combine(day, time(sh, sm)))
    end = tz.localize(datetime.combine(day, time(eh, em)))
    if end <= start:
        raise ValidationError(f"Invalid time slot '{label}': end must be after start.")
    return start, end


def parse_date(value: str) -> date:
    try:
        return datetime.strptime((value or "").strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValidationError("Invalid date format. Use YYYY-MM-DD.")


# ====== Generator ======
def generate_slots(
    day: date,
    day_start: str,
    day_end: str,
    busy_intervals: Iterable[BusyInterval],
    existing_appointments: Iterable,
    slot_minutes: int = 30,
) -> List[Slot]:
    """
    Tiles [day_start, day_end) with slots of slot_minutes, left to right.
    A trailing remainder shorter than one slot is dropped. Every slot is
    tagged unavailable when it overlaps a busy interval or a non-cancelled
    appointment (objects with start_at/end_at/status).
    """
    first = hhmm_to_minutes(day_start)
    last = hhmm_to_minutes(day_end)
    if slot_minutes <= 0 or first >= last:
        return []

    tz = models.local_tz()
    midnight = tz.localize(datetime.combine(day, time(0, 0)))

    taken = [(b.start, b.end) for b in busy_intervals]
    for ap in existing_appointments:
        if ap.status == models.AppointmentStatus.cancelled:
            continue
        taken.append((models.as_local(ap.start_at), models.as_local(ap.end_at)))

    slots = []
    cur = first
    while cur + slot_minutes <= last:
        s = midnight + timedelta(minutes=cur)
        e = s + timedelta(minutes=slot_minutes)
        free = not any(overlaps(s, e, b0, b1) for (b0, b1) in taken)
        slots.append(Slot(start=s, end=e, available=free))
        cur += slot_minutes
    return slots


# ====== Store side ======
def active_appointments_for_day(db: Session, doctor_id: str, day: date) -> Sequence[models.Appointment]:
    day_start = datetime.combine(day, time(0, 0))
    day_end = day_start + timedelta(days=1)
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.doctor_id == doctor_id)
        .filter(models.Appointment.status != models.AppointmentStatus.cancelled)
        .filter(models.Appointment.start_at < day_end)
        .filter(models.Appointment.end_at > day_start)
        .order_by(models.Appointment.start_at.asc())
        .all()
    )


def day_slots(db: Session, doctor: models.Doctor, day: date) -> dict:
    """
    Slots of a doctor for one day plus the soft status of the calendar query.
    Unavailable days return before touching Google Calendar or the DB.
    """
    hours = doctor.weekly_availability.for_date(day)
    result = {
        "doctorId": doctor.doctor_id,
        "date": day.isoformat(),
        "day": weekday_name(day),
        "available": hours.available,
        "workingHours": hours.to_dict(),
        "slots": [],
        "availableSlots": [],
        "calendarStatus": {"status": "skipped", "reason": "Day not available"},
    }
    if not hours.available:
        return result

    busy: List[BusyInterval] = []
    if doctor.calendar_id:
        try:
            busy = google_calendar.get_busy_intervals(doctor.calendar_id, day)
            result["calendarStatus"] = {"status": "ok", "busyCount": len(busy)}
        except UpstreamDegraded as e:
            logger.warning("Free/busy unavailable for doctor=%s date=%s: %s", doctor.doctor_id, day, e.detail)
            result["calendarStatus"] = {"status": "unavailable", "error": e.detail}
    else:
        result["calendarStatus"] = {"status": "skipped", "reason": "Doctor has no calendarId"}

    booked = active_appointments_for_day(db, doctor.doctor_id, day)
    slots = generate_slots(day, hours.start, hours.end, busy, booked, settings.SLOT_MINUTES)
    result["slots"] = [s.to_dict() for s in slots]
    result["availableSlots"] = [s.label for s in slots if s.available]
    return result
