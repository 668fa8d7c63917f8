from datetime import datetime, timedelta
from unittest.mock import patch

from medibook import models
from medibook.jobs.scheduler import reminder_job, reminder_window
from tests.base import DatabaseTestCase


def appointment(appointment_id: str, start: datetime, status=models.AppointmentStatus.confirmed) -> models.Appointment:
    return models.Appointment(
        appointment_id=appointment_id,
        doctor_id="D-test0001",
        patient_id="P-test0001",
        doctor_name="Dr. Asha Rao",
        patient_name="Ravi Kumar",
        patient_email="ravi@example.test",
        date=start.date().isoformat(),
        start_at=start,
        end_at=start + timedelta(minutes=30),
        time_slot="slot",
        status=status,
    )


class ReminderJobTests(DatabaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        # 2030-01-06 09:10 local, so the window is 2030-01-07 09:00..10:00
        self.now = models.local_tz().localize(datetime(2030, 1, 6, 9, 10))

    def test_window(self) -> None:
        start, end = reminder_window(self.now)

        self.assertEqual(start, datetime(2030, 1, 7, 9, 0))
        self.assertEqual(end, datetime(2030, 1, 7, 10, 0))

    @patch("medibook.jobs.scheduler.send_reminder", return_value={"status": "sent", "channel": "email"})
    def test_only_confirmed_in_window(self, send_reminder) -> None:
        self.db.add_all([
            appointment("A-in000001", datetime(2030, 1, 7, 9, 0)),
            appointment("A-in000002", datetime(2030, 1, 7, 9, 30)),
            appointment("A-cancel01", datetime(2030, 1, 7, 9, 0), status=models.AppointmentStatus.cancelled),
            appointment("A-later001", datetime(2030, 1, 7, 10, 0)),
        ])
        self.db.commit()

        sent = reminder_job(self.now)

        self.assertEqual(sent, 2)
        reminded = sorted(call.args[0].appointment_id for call in send_reminder.call_args_list)
        self.assertEqual(reminded, ["A-in000001", "A-in000002"])

    @patch("medibook.jobs.scheduler.send_reminder", return_value={"status": "skipped", "reason": "No patient contact"})
    def test_unsent_are_not_counted(self, send_reminder) -> None:
        self.db.add(appointment("A-in000001", datetime(2030, 1, 7, 9, 0)))
        self.db.commit()

        self.assertEqual(reminder_job(self.now), 0)
        send_reminder.assert_called_once()
