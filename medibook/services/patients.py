# medibook/services/patients.py
from __future__ import annotations
import logging
from typing import Optional

from sqlalchemy.orm import Session

from .. import models
from ..errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _clean(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None


def _first(db: Session, *criteria) -> Optional[models.Patient]:
    return db.query(models.Patient).filter(*criteria).order_by(models.Patient.id.asc()).first()


def find_by_contact(db: Session, email: Optional[str], phone: Optional[str]) -> Optional[models.Patient]:
    """Email match wins over phone match."""
    if email:
        patient = _first(db, models.Patient.email == email)
        if patient is not None:
            return patient
    if phone:
        return _first(db, models.Patient.phone == phone)
    return None


def _claimed_by_other(db: Session, patient: models.Patient, column, value: str) -> bool:
    return _first(db, column == value, models.Patient.id != patient.id) is not None


def upsert_patient(db: Session, name: Optional[str], email: Optional[str], phone: Optional[str]) -> models.Patient:
    """
    Create-or-update keyed by email, then by phone. An existing match is
    updated in place with the supplied non-empty values, except a contact
    that already belongs to another patient. Flushes, does not commit.
    """
    name, phone = _clean(name), _clean(phone)
    email = _clean(email)
    email = email.lower() if email else None
    if not email and not phone:
        raise ValidationError("Email or phone is required.")

    patient = find_by_contact(db, email, phone)
    if patient is None:
        patient = models.Patient(
            patient_id=models.new_business_id("P"),
            name=name,
            email=email,
            phone=phone,
        )
        db.add(patient)
        logger.info("Patient created: %s", patient.patient_id)
    else:
        patient.name = name or patient.name
        if email and email != patient.email:
            if _claimed_by_other(db, patient, models.Patient.email, email):
                logger.warning("Email kept on its owner, not copied to %s", patient.patient_id)
            else:
                patient.email = email
        if phone and phone != patient.phone:
            if _claimed_by_other(db, patient, models.Patient.phone, phone):
                logger.warning("Phone kept on its owner, not copied to %s", patient.patient_id)
            else:
                patient.phone = phone
        logger.info("Patient matched by contact: %s", patient.patient_id)
    db.flush()
    return patient


def get_patient(db: Session, patient_id: str) -> models.Patient:
    patient = db.query(models.Patient).filter(models.Patient.patient_id == patient_id).first()
    if not patient:
        raise NotFoundError("Patient not found")
    return patient
