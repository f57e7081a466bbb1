"""Lenient timestamp parsing for registry payloads."""

from __future__ import annotations

from datetime import datetime

from django.utils import timezone
from django.utils.dateparse import parse_datetime


def _parse(value) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return parse_datetime(value.strip())
    except ValueError:
        return None


def parse_timestamp(value) -> datetime | None:
    """
    Parse a registry timestamp into a local datetime.

    Anything that is not a valid instant (wrong type, blank, malformed or
    out of range) yields None. Aware values are shifted into the active time
    zone; naive values are already local.
    """
    parsed = _parse(value)
    if parsed is not None and timezone.is_aware(parsed):
        parsed = timezone.localtime(parsed)
    return parsed


def date_prefix(value) -> str:
    """
    ``YYYY-MM-DD`` calendar date written in an ISO timestamp string.

    The date is the one the string states, before any time zone shift, so
    ``2024-03-04T23:30:00+00:00`` and the compact ``20240304T233000`` both
    give ``2024-03-04``. Returns '' when the value does not parse.
    """
    if not isinstance(value, str):
        return ""
    parsed = _parse(value)
    if parsed is None:
        return ""
    return parsed.date().isoformat()
