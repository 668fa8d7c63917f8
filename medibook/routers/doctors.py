from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import require_api_key
from .. import models, schemas
from ..services.slots import day_slots, parse_date

router = APIRouter(prefix="", tags=["doctors"])


def _get_doctor(db: Session, doctor_id: str) -> models.Doctor:
    doc = db.query(models.Doctor).filter(models.Doctor.doctor_id == doctor_id).first()
    if not doc:
        raise HTTPException(status_code=404, detail="Doctor not found")
    return doc


@router.get("/doctors", response_model=list[schemas.DoctorOut])
def list_doctors(db: Session = Depends(get_db)):
    return db.query(models.Doctor).order_by(models.Doctor.name.asc()).all()


@router.post("/doctors", response_model=schemas.DoctorOut)
def upsert_doctor(req: schemas.DoctorIn, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    payload = req.model_dump()
    doctor_id = payload.pop("doctor_id") or models.new_business_id("D")
    doc = db.query(models.Doctor).filter(models.Doctor.doctor_id == doctor_id).first()
    if not doc:
        doc = models.Doctor(doctor_id=doctor_id)
        db.add(doc)
    for key, value in payload.items():
        setattr(doc, key, value)
    db.commit()
    db.refresh(doc)
    return doc


@router.get("/specialties")
def list_specialties(db: Session = Depends(get_db)):
    rows = db.query(models.Doctor.specialty).distinct().order_by(models.Doctor.specialty.asc()).all()
    return {"specialties": [r[0] for r in rows if r[0]]}


@router.get("/doctors/specialty/{specialty}", response_model=list[schemas.DoctorOut])
def doctors_by_specialty(specialty: str, db: Session = Depends(get_db)):
    return (
        db.query(models.Doctor)
        .filter(func.lower(models.Doctor.specialty) == specialty.strip().lower())
        .order_by(models.Doctor.name.asc())
        .all()
    )


@router.get("/doctors/{doctor_id}", response_model=schemas.DoctorOut)
def get_doctor(doctor_id: str, db: Session = Depends(get_db)):
    return _get_doctor(db, doctor_id)


@router.put("/doctors/{doctor_id}", response_model=schemas.DoctorOut)
def update_doctor(doctor_id: str, req: schemas.DoctorUpdate, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    doc = _get_doctor(db, doctor_id)
    for key, value in req.model_dump(exclude_unset=True).items():
        setattr(doc, key, value)
    db.commit()
    db.refresh(doc)
    return doc


@router.delete("/doctors/{doctor_id}")
def delete_doctor(doctor_id: str, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    doc = _get_doctor(db, doctor_id)
    db.delete(doc)
    db.commit()
    return {"success": True, "doctorId": doctor_id}


@router.post("/doctors/{doctor_id}/availability")
def doctor_availability(doctor_id: str, req: schemas.AvailabilityRequest, db: Session = Depends(get_db)):
    doc = _get_doctor(db, doctor_id)
    day = parse_date(req.date)
    return {"success": True, **day_slots(db, doc, day)}


@router.get("/doctors/{doctor_id}/appointments", response_model=list[schemas.AppointmentOut])
def doctor_appointments(doctor_id: str, db: Session = Depends(get_db)):
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.doctor_id == doctor_id)
        .order_by(models.Appointment.start_at.asc())
        .all()
    )
