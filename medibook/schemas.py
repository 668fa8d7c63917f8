from __future__ import annotations
from datetime import datetime
from typing import Optional

from pydantic import AliasGenerator, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .availability import WeeklyAvailability


class CamelIn(BaseModel):
    """Request bodies: camelCase on the wire, snake_case accepted too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CamelOut(BaseModel):
    """Responses read from ORM rows and serialized as camelCase."""
    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=AliasGenerator(serialization_alias=to_camel),
    )


# ===== Doctors =====
def _check_availability(value: Optional[dict]) -> Optional[dict]:
    if value is None:
        return None
    # Raises ValueError on unknown weekdays or start >= end
    return WeeklyAvailability.from_mapping(value).to_dict()


class DoctorIn(CamelIn):
    doctor_id: Optional[str] = None
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    specialty: str = Field(min_length=1)
    qualification: Optional[str] = None
    experience: Optional[int] = Field(default=None, ge=0)
    consultation_fee: Optional[float] = Field(default=None, ge=0)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    calendar_id: Optional[str] = None
    timezone: str = "Asia/Kolkata"
    availability: dict[str, dict] = Field(default_factory=dict)

    @field_validator("availability")
    @classmethod
    def _weekly(cls, v):
        return _check_availability(v)


class DoctorUpdate(CamelIn):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    specialty: Optional[str] = None
    qualification: Optional[str] = None
    experience: Optional[int] = Field(default=None, ge=0)
    consultation_fee: Optional[float] = Field(default=None, ge=0)
    rating: Optional[float] = Field(default=None, ge=0, le=5)
    calendar_id: Optional[str] = None
    timezone: Optional[str] = None
    availability: Optional[dict[str, dict]] = None

    @field_validator("availability")
    @classmethod
    def _weekly(cls, v):
        if v is None:
            raise ValueError("must not be null")
        return _check_availability(v)

    # Omitting a field leaves it unchanged; null would clear a NOT NULL column
    @field_validator("name", "specialty", "timezone")
    @classmethod
    def _required_columns(cls, v):
        if v is None or not v.strip():
            raise ValueError("must not be null or empty")
        return v


class DoctorOut(CamelOut):
    doctor_id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    specialty: str
    qualification: Optional[str] = None
    experience: Optional[int] = None
    consultation_fee: Optional[float] = None
    rating: Optional[float] = None
    calendar_id: Optional[str] = None
    timezone: str
    availability: dict


class AvailabilityRequest(BaseModel):
    date: str = Field(description="YYYY-MM-DD")


# ===== Patients =====
class PatientRegister(CamelIn):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    otp: Optional[str] = None


class PatientUpdate(CamelIn):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


class PatientOut(CamelOut):
    patient_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None


# ===== Appointments =====
class BookRequest(CamelIn):
    doctor_id: str
    patient_name: str
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    date: str = Field(description="YYYY-MM-DD")
    time_slot: str = Field(description="HH:MM AM - HH:MM PM")
    reason: Optional[str] = None
    appointment_type: Optional[str] = None
    payment_status: Optional[str] = None


class AppointmentOut(CamelOut):
    appointment_id: str
    doctor_id: str
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    patient_id: str
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None
    date: str
    time_slot: str
    start_date_time: datetime
    end_date_time: datetime
    status: str
    payment_status: str
    reason: Optional[str] = None
    appointment_type: Optional[str] = None
    google_event_id: Optional[str] = None
    cancelled_at: Optional[datetime] = None

    @field_validator("status", mode="before")
    @classmethod
    def _status_value(cls, v):
        return getattr(v, "value", v)


# ===== OTP =====
class OtpSendRequest(CamelIn):
    email: Optional[str] = None
    phone: Optional[str] = None
    name: Optional[str] = None

    @property
    def contact(self) -> Optional[str]:
        return self.email or self.phone


class OtpVerifyRequest(CamelIn):
    email: Optional[str] = None
    phone: Optional[str] = None
    otp: str

    @property
    def contact(self) -> Optional[str]:
        return self.email or self.phone
