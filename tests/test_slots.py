import unittest
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch

from medibook import models
from medibook.errors import UpstreamDegraded, ValidationError
from medibook.services.google_calendar import BusyInterval
from medibook.services.slots import (
    day_slots,
    format_slot_label,
    generate_slots,
    overlaps,
    parse_date,
    parse_slot_label,
)
from tests.base import MONDAY, TUESDAY, DatabaseTestCase


def at(hour: int, minute: int = 0) -> datetime:
    return models.local_tz().localize(datetime(MONDAY.year, MONDAY.month, MONDAY.day, hour, minute))


def booked(start: datetime, end: datetime, status=models.AppointmentStatus.confirmed):
    return SimpleNamespace(start_at=start.replace(tzinfo=None), end_at=end.replace(tzinfo=None), status=status)


class OverlapTests(unittest.TestCase):
    def test_touching_endpoints_do_not_overlap(self) -> None:
        self.assertFalse(overlaps(at(9), at(10), at(10), at(11)))
        self.assertFalse(overlaps(at(10), at(11), at(9), at(10)))

    def test_partial_and_nested_overlap(self) -> None:
        self.assertTrue(overlaps(at(9), at(10), at(9, 30), at(10, 30)))
        self.assertTrue(overlaps(at(9), at(12), at(10), at(11)))
        self.assertTrue(overlaps(at(10), at(11), at(9), at(12)))

    def test_symmetric(self) -> None:
        pairs = [
            (at(9), at(10), at(9, 30), at(11)),
            (at(9), at(10), at(10), at(11)),
            (at(8), at(9), at(11), at(12)),
        ]
        for a0, a1, b0, b1 in pairs:
            self.assertEqual(overlaps(a0, a1, b0, b1), overlaps(b0, b1, a0, a1))


class GenerateSlotsTests(unittest.TestCase):
    def test_tiles_working_window(self) -> None:
        slots = generate_slots(MONDAY, "09:00", "11:00", [], [])

        self.assertEqual(
            [s.label for s in slots],
            ["09:00 AM - 09:30 AM", "09:30 AM - 10:00 AM", "10:00 AM - 10:30 AM", "10:30 AM - 11:00 AM"],
        )
        self.assertTrue(all(s.available for s in slots))
        self.assertEqual(slots[0].start.utcoffset(), timedelta(hours=5, minutes=30))

    def test_short_remainder_is_dropped(self) -> None:
        slots = generate_slots(MONDAY, "09:00", "10:45", [], [])

        self.assertEqual(len(slots), 3)
        self.assertEqual(slots[-1].end, at(10, 30))

    def test_inverted_or_empty_window(self) -> None:
        self.assertEqual(generate_slots(MONDAY, "11:00", "09:00", [], []), [])
        self.assertEqual(generate_slots(MONDAY, "09:00", "09:00", [], []), [])
        self.assertEqual(generate_slots(MONDAY, "09:00", "09:20", [], []), [])

    def test_busy_interval_marks_overlapping_slots(self) -> None:
        busy = [BusyInterval(start=at(9, 15), end=at(10))]

        slots = generate_slots(MONDAY, "09:00", "11:00", busy, [])

        self.assertEqual([s.available for s in slots], [False, False, True, True])

    def test_cancelled_appointments_are_ignored(self) -> None:
        existing = [
            booked(at(9), at(9, 30)),
            booked(at(10), at(10, 30), status=models.AppointmentStatus.cancelled),
        ]

        slots = generate_slots(MONDAY, "09:00", "11:00", [], existing)

        self.assertEqual([s.available for s in slots], [False, True, True, True])

    def test_to_dict_fields(self) -> None:
        out = generate_slots(MONDAY, "14:00", "14:30", [], [])[0].to_dict()

        self.assertEqual(out["startTime"], "14:00")
        self.assertEqual(out["endTime"], "14:30")
        self.assertEqual(out["label"], "02:00 PM - 02:30 PM")
        self.assertTrue(out["startISO"].endswith("+05:30"))
        self.assertTrue(out["available"])


class LabelTests(unittest.TestCase):
    def test_label_round_trip(self) -> None:
        start, end = parse_slot_label(MONDAY, "09:30 AM - 10:00 AM")

        self.assertEqual((start, end), (at(9, 30), at(10)))
        self.assertEqual(format_slot_label(start, end), "09:30 AM - 10:00 AM")

    def test_noon_and_midnight(self) -> None:
        start, end = parse_slot_label(MONDAY, "12:00 PM - 12:30 PM")
        self.assertEqual(start.hour, 12)
        start, _ = parse_slot_label(MONDAY, "12:00 AM - 12:30 AM")
        self.assertEqual(start.hour, 0)

    def test_24h_form_accepted(self) -> None:
        start, end = parse_slot_label(MONDAY, "14:00 - 14:30")
        self.assertEqual((start, end), (at(14), at(14, 30)))

    def test_rejects_garbage_and_inverted(self) -> None:
        for label in ("", "soon", "13:00 PM - 13:30 PM", "10:00 AM - 09:30 AM", "25:00 - 25:30"):
            with self.assertRaises(ValidationError, msg=label):
                parse_slot_label(MONDAY, label)

    def test_parse_date(self) -> None:
        self.assertEqual(parse_date("2030-01-07"), MONDAY)
        with self.assertRaises(ValidationError):
            parse_date("07/01/2030")


class DaySlotsTests(DatabaseTestCase):
    def test_unavailable_day_skips_calendar(self) -> None:
        doctor = self.make_doctor(calendar_id="doc@calendar.test")

        with patch("medibook.services.google_calendar.get_busy_intervals") as busy:
            result = day_slots(self.db, doctor, TUESDAY)

        busy.assert_not_called()
        self.assertFalse(result["available"])
        self.assertEqual(result["slots"], [])
        self.assertEqual(result["calendarStatus"]["status"], "skipped")

    def test_busy_intervals_from_calendar(self) -> None:
        doctor = self.make_doctor(calendar_id="doc@calendar.test")
        busy = [BusyInterval(start=at(10), end=at(11))]

        with patch("medibook.services.google_calendar.get_busy_intervals", return_value=busy):
            result = day_slots(self.db, doctor, MONDAY)

        self.assertEqual(result["availableSlots"], ["09:00 AM - 09:30 AM", "09:30 AM - 10:00 AM"])
        self.assertEqual(result["calendarStatus"], {"status": "ok", "busyCount": 1})

    def test_calendar_outage_degrades_to_db_only(self) -> None:
        doctor = self.make_doctor(calendar_id="doc@calendar.test")

        with patch(
            "medibook.services.google_calendar.get_busy_intervals",
            side_effect=UpstreamDegraded("Google Calendar freebusy failed"),
        ):
            result = day_slots(self.db, doctor, MONDAY)

        self.assertEqual(len(result["availableSlots"]), 4)
        self.assertEqual(result["calendarStatus"]["status"], "unavailable")

    def test_no_calendar_id(self) -> None:
        doctor = self.make_doctor()

        result = day_slots(self.db, doctor, MONDAY)

        self.assertEqual(len(result["slots"]), 4)
        self.assertEqual(result["calendarStatus"]["status"], "skipped")
        self.assertEqual(result["day"], "monday")


if __name__ == "__main__":
    unittest.main()
