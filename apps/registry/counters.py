"""Summary counters for the selected day."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .classifiers import ShiftStatus, ShiftType

# Attribute name -> registry payload key
PAYLOAD_KEYS = {
    "total_today": "totalToday",
    "day_shifts": "dayShifts",
    "night_shifts": "nightShifts",
    "completed": "completed",
}


@dataclass(frozen=True)
class DayCounters:
    total_today: int = 0
    day_shifts: int = 0
    night_shifts: int = 0
    completed: int = 0

    @classmethod
    def from_payload(cls, payload, shifts=()) -> "DayCounters":
        """
        Use the backend's counters when it sent all of them, otherwise count
        the day's shifts.
        """
        if isinstance(payload, Mapping):
            values = {}
            for attr, key in PAYLOAD_KEYS.items():
                value = payload.get(key)
                if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                    break
                values[attr] = value
            else:
                return cls(**values)
        return derive_counters(shifts)


def derive_counters(shifts) -> DayCounters:
    shifts = list(shifts)
    return DayCounters(
        total_today=len(shifts),
        day_shifts=sum(1 for s in shifts if s.shift_type == ShiftType.DAY),
        night_shifts=sum(1 for s in shifts if s.shift_type == ShiftType.NIGHT),
        completed=sum(1 for s in shifts if s.status == ShiftStatus.COMPLETED),
    )
