# medibook/routers/admin.py
from __future__ import annotations
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..deps import require_admin
from .. import models
from ..services import google_calendar
from ..services.otp import OtpService, get_otp_service
from ..services.slots import parse_date

router = APIRouter(tags=["admin"])


# ──────────────────────────────────────────────────────────────────────────────
# Basics
# (main.py mounts this router with prefix="/admin")
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/health")
def admin_health(db: Session = Depends(get_db), otp: OtpService = Depends(get_otp_service)):
    return {
        "ok": True,
        "app": settings.APP_NAME,
        "env": settings.ENV,
        "tz": settings.TIMEZONE,
        "utcOffset": settings.UTC_OFFSET,
        "doctors": db.query(models.Doctor).count(),
        "appointments": db.query(models.Appointment).count(),
        "otpPending": len(otp.store) if hasattr(otp.store, "__len__") else "n/a",
        "ts": datetime.utcnow().isoformat(),
    }


# ──────────────────────────────────────────────────────────────────────────────
# Calendar: diagnostics
# ──────────────────────────────────────────────────────────────────────────────
@router.get("/calendars", dependencies=[Depends(require_admin)])
def admin_calendars():
    """Calendars visible to the configured Google credentials."""
    return {"ok": True, "calendars": google_calendar.list_calendars()}


@router.get("/calendar/freebusy", dependencies=[Depends(require_admin)])
def admin_calendar_freebusy(
    doctor_id: str = Query(alias="doctorId"),
    date_str: str = Query(alias="date", description="YYYY-MM-DD"),
    db: Session = Depends(get_db),
):
    """
    Raw busy windows of a doctor's calendar for one day.
    Useful to explain why a slot shows as taken while the DB is empty.
    """
    doc = db.query(models.Doctor).filter(models.Doctor.doctor_id == doctor_id).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Doctor not found")
    if not doc.calendar_id:
        raise HTTPException(status_code=400, detail="Doctor has no calendarId")
    day = parse_date(date_str)
    busy = google_calendar.get_busy_intervals(doc.calendar_id, day)
    return {
        "ok": True,
        "calendarId": doc.calendar_id,
        "date": day.isoformat(),
        "busy": [{"start": b.start.isoformat(), "end": b.end.isoformat()} for b in busy],
    }
