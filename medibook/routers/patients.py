from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..deps import require_api_key
from .. import models, schemas
from ..services.otp import OtpService, get_otp_service
from ..services.patients import get_patient, upsert_patient

router = APIRouter(prefix="", tags=["patients"])


@router.post("/patients/register", response_model=schemas.PatientOut)
def register_patient(
    req: schemas.PatientRegister,
    db: Session = Depends(get_db),
    otp: OtpService = Depends(get_otp_service),
    _: bool = Depends(require_api_key),
):
    """
    Upsert by contact: registering again with a known email/phone returns
    (and refreshes) the existing record.
    """
    if settings.REQUIRE_OTP_ON_REGISTER:
        contact = req.email or req.phone
        if not contact or not req.otp:
            raise HTTPException(status_code=400, detail="OTP is required for registration.")
        result = otp.verify(contact, req.otp)
        if not result.valid:
            raise HTTPException(status_code=400, detail=result.message)

    patient = upsert_patient(db, req.name, req.email, req.phone)
    db.commit()
    db.refresh(patient)
    return patient


@router.get("/patients", response_model=list[schemas.PatientOut])
def list_patients(db: Session = Depends(get_db)):
    return db.query(models.Patient).order_by(models.Patient.name.asc()).all()


@router.get("/patients/{patient_id}", response_model=schemas.PatientOut)
def read_patient(patient_id: str, db: Session = Depends(get_db)):
    return get_patient(db, patient_id)


@router.put("/patients/{patient_id}", response_model=schemas.PatientOut)
def update_patient(patient_id: str, req: schemas.PatientUpdate, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    patient = get_patient(db, patient_id)
    changes = req.model_dump(exclude_unset=True)
    if "email" in changes and changes["email"]:
        changes["email"] = changes["email"].strip().lower()
    for key, value in changes.items():
        setattr(patient, key, value)
    if not patient.email and not patient.phone:
        raise HTTPException(status_code=400, detail="Email or phone is required.")
    db.commit()
    db.refresh(patient)
    return patient


@router.delete("/patients/{patient_id}")
def delete_patient(patient_id: str, db: Session = Depends(get_db), _: bool = Depends(require_api_key)):
    patient = get_patient(db, patient_id)
    db.delete(patient)
    db.commit()
    return {"success": True, "patientId": patient_id}


@router.get("/patients/{patient_id}/appointments", response_model=list[schemas.AppointmentOut])
def patient_appointments(patient_id: str, db: Session = Depends(get_db)):
    get_patient(db, patient_id)
    return (
        db.query(models.Appointment)
        .filter(models.Appointment.patient_id == patient_id)
        .order_by(models.Appointment.start_at.asc())
        .all()
    )
