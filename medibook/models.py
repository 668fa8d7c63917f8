# medibook/models.py
from typing import Optional
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import Integer, String, DateTime, Enum, Float, Text, JSON, Index, text
from datetime import datetime
import enum
import uuid

import pytz

from .availability import WeeklyAvailability
from .config import settings
from .database import Base


def new_business_id(prefix: str) -> str:
    """D-1a2b3c4d / P-... / A-..."""
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def local_tz():
    return pytz.FixedOffset(settings.utc_offset_minutes)


def as_local(dt: Optional[datetime]) -> Optional[datetime]:
    """Stored naive-local → aware local (+05:30)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return local_tz().localize(dt)
    return dt.astimezone(local_tz())


def to_naive_local(dt: datetime) -> datetime:
    """Aware → naive local, the form kept in the DB."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(local_tz()).replace(tzinfo=None)


class AppointmentStatus(str, enum.Enum):
    confirmed = "confirmed"
    cancelled = "cancelled"


class Doctor(Base):
    __tablename__ = "doctors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    doctor_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    specialty: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    qualification: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    experience: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    consultation_fee: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    rating: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    calendar_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    timezone: Mapped[str] = mapped_column(String(60), nullable=False, default="Asia/Kolkata")
    # Plain JSON value, see availability.py
    availability: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)

    @property
    def weekly_availability(self) -> WeeklyAvailability:
        return WeeklyAvailability.from_mapping(self.availability)


class Patient(Base):
    __tablename__ = "patients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    patient_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow)


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        # Last line of defence against two confirmed bookings of the same slot
        Index(
            "uq_appointments_active_slot",
            "doctor_id",
            "start_at",
            unique=True,
            sqlite_where=text("status = 'confirmed'"),
            postgresql_where=text("status = 'confirmed'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    appointment_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)
    doctor_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    patient_id: Mapped[str] = mapped_column(String(20), nullable=False, index=True)

    # Denormalized so the history survives edits/deletes of doctor or patient
    doctor_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    doctor_specialty: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    patient_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    patient_email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    patient_phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    date: Mapped[str] = mapped_column(String(10), nullable=False, index=True)  # "2025-11-25"
    # Naive local time (+05:30), half-open [start_at, end_at)
    start_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    end_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    time_slot: Mapped[str] = mapped_column(String(40), nullable=False)

    status: Mapped[AppointmentStatus] = mapped_column(
        Enum(AppointmentStatus, name="appointment_status"),
        default=AppointmentStatus.confirmed,
        nullable=False,
    )
    payment_status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    appointment_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True, default="In-Person")
    google_event_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=datetime.utcnow)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def start_date_time(self) -> datetime:
        return as_local(self.start_at)

    @property
    def end_date_time(self) -> datetime:
        return as_local(self.end_at)
