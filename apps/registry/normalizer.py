"""
Shift record normalizer.

Converts one raw registry item into a ShiftViewModel with resolved display
labels and classification tags. Normalization is total: a record with every
optional field missing still produces a view model made of placeholders.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from .classifiers import (
    ShiftStatus,
    ShiftType,
    classify_shift_type,
    classify_status,
    is_interactive,
)
from .conf import registry_setting
from .timestamps import date_prefix, parse_timestamp


@dataclass(frozen=True)
class ShiftViewModel:
    """A shift as the console shows it."""

    id: str
    guard_id: str
    guard_name: str
    branch_name: str
    checkpoint_name: str
    agency_name: str
    date_label: str
    time_range_label: str
    shift_type: ShiftType
    status: ShiftStatus
    raw_status: str | None
    date_key: str

    @property
    def interactive(self) -> bool:
        return is_interactive(self.raw_status, self.status)


def _text(value) -> str | None:
    """Non-blank string form of a scalar field, else None."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _label(record: Mapping, name_key: str, id_key: str) -> str:
    return (
        _text(record.get(name_key))
        or _text(record.get(id_key))
        or registry_setting("PLACEHOLDER")
    )


def _date_label(start) -> str:
    if start is None:
        return registry_setting("PLACEHOLDER")
    return start.strftime(registry_setting("DATE_LABEL_FORMAT"))


def _time_range_label(start, end) -> str:
    if start is None or end is None:
        return registry_setting("PLACEHOLDER")
    time_format = registry_setting("TIME_LABEL_FORMAT")
    return f"{start.strftime(time_format)}–{end.strftime(time_format)}"


def normalize(record) -> ShiftViewModel:
    """Build the view model for a single raw registry item."""
    if not isinstance(record, Mapping):
        record = {}

    raw_start = record.get("startAt")
    start = parse_timestamp(raw_start)
    end = parse_timestamp(record.get("endAt"))
    raw_status = record.get("status")
    if not isinstance(raw_status, str) or not raw_status.strip():
        raw_status = None
    status = classify_status(raw_status)
    guard_id = _text(record.get("guardId")) or ""

    shift_id = _text(record.get("id"))
    if shift_id is None:
        # Keep ids stable for records the backend sent without one
        shift_id = f"{guard_id or 'shift'}@{_text(raw_start) or 'unscheduled'}"

    return ShiftViewModel(
        id=shift_id,
        guard_id=guard_id,
        guard_name=_text(record.get("guardName")) or registry_setting("GUARD_PLACEHOLDER"),
        branch_name=_label(record, "branchName", "branchId"),
        checkpoint_name=_label(record, "checkpointName", "checkpointId"),
        agency_name=_label(record, "agencyName", "agencyId"),
        date_label=_date_label(start),
        time_range_label=_time_range_label(start, end),
        shift_type=classify_shift_type(record.get("kind"), start),
        status=status,
        raw_status=raw_status,
        date_key=date_prefix(raw_start),
    )


def normalize_all(records) -> tuple[ShiftViewModel, ...]:
    """Normalize a page of items; a non-list payload yields no shifts."""
    if not isinstance(records, (list, tuple)):
        return ()
    return tuple(normalize(record) for record in records)
