import unittest
from datetime import date

from medibook.availability import (
    DayAvailability,
    WeeklyAvailability,
    hhmm_to_minutes,
    weekday_name,
)


class DayAvailabilityTests(unittest.TestCase):
    def test_unavailable_day_needs_no_hours(self) -> None:
        day = DayAvailability(available=False)
        self.assertEqual(day.to_dict(), {"available": False})

    def test_available_day_requires_start_and_end(self) -> None:
        with self.assertRaises(ValueError):
            DayAvailability(available=True, start="09:00")

    def test_start_must_precede_end(self) -> None:
        with self.assertRaises(ValueError):
            DayAvailability(available=True, start="17:00", end="09:00")
        with self.assertRaises(ValueError):
            DayAvailability(available=True, start="09:00", end="09:00")

    def test_rejects_malformed_time(self) -> None:
        with self.assertRaises(ValueError):
            DayAvailability(available=True, start="9am", end="17:00")


class WeeklyAvailabilityTests(unittest.TestCase):
    def test_missing_weekday_is_unavailable(self) -> None:
        weekly = WeeklyAvailability.from_mapping({"monday": {"available": True, "start": "09:00", "end": "17:00"}})

        self.assertTrue(weekly.for_weekday("monday").available)
        self.assertFalse(weekly.for_weekday("sunday").available)

    def test_for_date_uses_weekday(self) -> None:
        weekly = WeeklyAvailability.from_mapping({"Monday": {"available": True, "start": "09:00", "end": "11:00"}})

        self.assertEqual(weekday_name(date(2030, 1, 7)), "monday")
        self.assertTrue(weekly.for_date(date(2030, 1, 7)).available)
        self.assertFalse(weekly.for_date(date(2030, 1, 8)).available)

    def test_unknown_weekday_rejected(self) -> None:
        with self.assertRaises(ValueError):
            WeeklyAvailability.from_mapping({"funday": {"available": False}})

    def test_to_dict_lists_all_seven_days(self) -> None:
        out = WeeklyAvailability.from_mapping(None).to_dict()

        self.assertEqual(len(out), 7)
        self.assertTrue(all(v == {"available": False} for v in out.values()))

    def test_hhmm_to_minutes(self) -> None:
        self.assertEqual(hhmm_to_minutes("00:00"), 0)
        self.assertEqual(hhmm_to_minutes("09:30"), 570)
        self.assertEqual(hhmm_to_minutes("23:59"), 1439)


if __name__ == "__main__":
    unittest.main()
