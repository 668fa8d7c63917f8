from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_api_key
from .. import models, schemas
from ..services.booking import BookingRequest, book_appointment, cancel_appointment

router = APIRouter(prefix="/appointments", tags=["appointments"])


def _now_local_naive() -> datetime:
    return datetime.now(models.local_tz()).replace(tzinfo=None)


@router.post("/book")
def book(req: schemas.BookRequest, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    result = book_appointment(db, BookingRequest(**req.model_dump()))
    appointment = schemas.AppointmentOut.model_validate(result.appointment)
    return {
        "success": True,
        "appointment": appointment.model_dump(mode="json", by_alias=True),
        "calendarStatus": result.calendar_status,
        "emailStatus": result.notification_status,
    }


@router.post("/{appointment_id}/cancel")
def cancel(appointment_id: str, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    appt = cancel_appointment(db, appointment_id)
    return {"success": True, "appointmentId": appt.appointment_id, "status": appt.status.value}


@router.get("", response_model=list[schemas.AppointmentOut])
def list_appointments(db: Session = Depends(get_db)):
    return db.query(models.Appointment).order_by(models.Appointment.start_at.asc()).all()


@router.get("/today", response_model=list[schemas.AppointmentOut])
def appointments_today(db: Session = Depends(get_db)):
    today = _now_local_naive().date().isoformat()
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.date == today)
        .order_by(models.Appointment.start_at.asc())
        .all()
    )


@router.get("/upcoming", response_model=list[schemas.AppointmentOut])
def appointments_upcoming(db: Session = Depends(get_db)):
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.start_at >= _now_local_naive())
        .filter(models.Appointment.status == models.AppointmentStatus.confirmed)
        .order_by(models.Appointment.start_at.asc())
        .all()
    )


@router.get("/{appointment_id}", response_model=schemas.AppointmentOut)
def get_appointment(appointment_id: str, db: Session = Depends(get_db)):
    appt = db.query(models.Appointment).filter(models.Appointment.appointment_id == appointment_id).first()
    if not appt:
        raise HTTPException(status_code=404, detail="Appointment not found")
    return appt
