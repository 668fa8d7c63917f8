# medibook/availability.py
"""
Weekly working-hours template of a doctor.

Stored as a plain JSON value on the Doctor row, e.g.

    {"monday": {"available": true, "start": "09:00", "end": "17:00"},
     "sunday": {"available": false}}

A weekday that is missing from the mapping counts as unavailable.
"""
from __future__ import annotations
import re
from dataclasses import dataclass, field
from datetime import date
from typing import Mapping, Optional

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")

_HHMM = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def hhmm_to_minutes(value: str) -> int:
    m = _HHMM.match(str(value or "").strip())
    if not m:
        raise ValueError(f"invalid time '{value}', expected HH:MM")
    return int(m.group(1)) * 60 + int(m.group(2))


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


@dataclass(frozen=True)
class DayAvailability:
    available: bool = False
    start: Optional[str] = None
    end: Optional[str] = None

    def __post_init__(self):
        if not self.available:
            return
        if not self.start or not self.end:
            raise ValueError("start and end are required when available is true")
        if hhmm_to_minutes(self.start) >= hhmm_to_minutes(self.end):
            raise ValueError(f"start {self.start} must be before end {self.end}")

    def to_dict(self) -> dict:
        out = {"available": self.available}
        if self.start is not None:
            out["start"] = self.start
        if self.end is not None:
            out["end"] = self.end
        return out


UNAVAILABLE = DayAvailability(available=False)


@dataclass(frozen=True)
class WeeklyAvailability:
    days: Mapping[str, DayAvailability] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, raw: Optional[Mapping]) -> "WeeklyAvailability":
        days = {}
        for name, value in (raw or {}).items():
            key = str(name).strip().lower()
            if key not in WEEKDAYS:
                raise ValueError(f"unknown weekday '{name}'")
            if isinstance(value, DayAvailability):
                days[key] = value
            elif value is None:
                days[key] = UNAVAILABLE
            elif not isinstance(value, Mapping):
                raise ValueError(f"availability for '{name}' must be an object")
            else:
                days[key] = DayAvailability(
                    available=bool(value.get("available", False)),
                    start=value.get("start"),
                    end=value.get("end"),
                )
        return cls(days=days)

    def for_weekday(self, name: str) -> DayAvailability:
        return self.days.get(name.lower(), UNAVAILABLE)

    def for_date(self, day: date) -> DayAvailability:
        return self.for_weekday(weekday_name(day))

    def to_dict(self) -> dict:
        return {name: self.for_weekday(name).to_dict() for name in WEEKDAYS}
