"""
Status, shift type and interactivity classification.

The registry sends free-form status and kind strings. Every mapping here is
total: unknown or missing input lands on a defined default, never an error.
"""

from __future__ import annotations

from django.db import models

from .timestamps import parse_timestamp


class ShiftStatus(models.TextChoices):
    SCHEDULED = "scheduled", "Scheduled"
    COMPLETED = "completed", "Completed"
    MISSED = "missed", "Missed"


class ShiftType(models.TextChoices):
    DAY = "day", "Day"
    NIGHT = "night", "Night"


COMPLETED_TOKENS = frozenset({"COMPLETED", "FINISHED"})
MISSED_TOKENS = frozenset({"CANCELLED", "CANCELED", "MISSED"})

# Raw statuses of shifts that have not started yet (no session history).
INACTIVE_TOKENS = frozenset({"SCHEDULED", "PLANNED", "PENDING", "ASSIGNED", "CREATED"})

NIGHT_STARTS_AT = 18
NIGHT_ENDS_AT = 6


def _token(value) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().upper()


def classify_status(raw_status=None) -> ShiftStatus:
    """Map a raw lifecycle status onto scheduled/completed/missed."""
    token = _token(raw_status)
    if token in COMPLETED_TOKENS:
        return ShiftStatus.COMPLETED
    if token in MISSED_TOKENS:
        return ShiftStatus.MISSED
    return ShiftStatus.SCHEDULED


def classify_shift_type(kind=None, start_at=None) -> ShiftType:
    """
    Decide whether a shift is a day or a night shift.

    An explicit DAY/NIGHT kind wins. Otherwise the local start hour decides
    (18:00 to 05:59 is night). With no usable signal the shift is a day shift.
    """
    token = _token(kind)
    if token == "DAY":
        return ShiftType.DAY
    if token == "NIGHT":
        return ShiftType.NIGHT

    started = parse_timestamp(start_at)
    if started is None:
        return ShiftType.DAY
    if started.hour >= NIGHT_STARTS_AT or started.hour < NIGHT_ENDS_AT:
        return ShiftType.NIGHT
    return ShiftType.DAY


def is_interactive(raw_status=None, classified_status=None) -> bool:
    """
    Whether a shift's detail view is worth opening.

    A present raw status is the sole determinant. Only when it is missing
    does the coarse classification decide.
    """
    token = _token(raw_status)
    if token:
        return token not in INACTIVE_TOKENS
    return classified_status != ShiftStatus.SCHEDULED
