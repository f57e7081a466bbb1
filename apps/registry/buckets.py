"""
Calendar bucketing for week and month views.

Date keys are always ``YYYY-MM-DD`` so that the dates used as fetch
parameters and the dates used for bucket lookups never disagree.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta

from django.utils import timezone


def _as_date(value) -> date:
    if isinstance(value, datetime):
        if timezone.is_aware(value):
            value = timezone.localtime(value)
        return value.date()
    return value


def iso_date(value) -> str:
    """Canonical local calendar date of a date or datetime."""
    return _as_date(value).isoformat()


def week_dates(anchor) -> list[date]:
    """
    The Monday-to-Sunday week containing ``anchor``.

    Weekday index counts from Sunday (0) to Saturday (6); ``(index + 6) % 7``
    is the number of days since the preceding Monday. Weeks crossing a DST
    change at local midnight are not special-cased.
    """
    day = _as_date(anchor)
    weekday_index = day.isoweekday() % 7
    monday = day - timedelta(days=(weekday_index + 6) % 7)
    return [monday + timedelta(days=offset) for offset in range(7)]


def month_dates(anchor) -> list[date]:
    """Every calendar date of the month containing ``anchor``."""
    day = _as_date(anchor)
    _, days_in_month = calendar.monthrange(day.year, day.month)
    return [date(day.year, day.month, number) for number in range(1, days_in_month + 1)]


def group_by_date(shifts) -> dict[str, list]:
    """
    Partition shifts by date key, keeping input order within each bucket.

    Shifts without a date key are bucketed under their date label so none is
    ever dropped.
    """
    buckets: dict[str, list] = {}
    for shift in shifts:
        buckets.setdefault(shift.date_key or shift.date_label, []).append(shift)
    return buckets


def calendar_buckets(shifts, dates) -> dict[str, list]:
    """Bucket shifts with an entry (possibly empty) for every date in ``dates``."""
    buckets: dict[str, list] = {iso_date(day): [] for day in dates}
    for key, bucket in group_by_date(shifts).items():
        buckets.setdefault(key, []).extend(bucket)
    return buckets


def shifts_on(buckets, day) -> list:
    return list(buckets.get(iso_date(day), []))
