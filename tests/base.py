import unittest
from datetime import date

from medibook import models
from medibook.database import Base, SessionLocal, engine

# 2030-01-07 is a Monday
MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)

MONDAY_MORNING = {
    "monday": {"available": True, "start": "09:00", "end": "11:00"},
    "tuesday": {"available": False},
}


class DatabaseTestCase(unittest.TestCase):
    """Fresh schema on the shared in-memory SQLite for every test."""

    def setUp(self) -> None:
        Base.metadata.drop_all(bind=engine)
        Base.metadata.create_all(bind=engine)
        self.db = SessionLocal()
        self.addCleanup(self.db.close)

    def make_doctor(self, **overrides) -> models.Doctor:
        fields = {
            "doctor_id": "D-test0001",
            "name": "Dr. Asha Rao",
            "email": "asha.rao@clinic.test",
            "specialty": "Cardiology",
            "availability": MONDAY_MORNING,
            "calendar_id": None,
        }
        fields.update(overrides)
        doctor = models.Doctor(**fields)
        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)
        return doctor

    def count(self, model) -> int:
        self.db.expire_all()
        return self.db.query(model).count()
