"""Filters shared by the registry views and fetch parameters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from django.db import models

from .buckets import iso_date

ALL_BRANCHES = "all"


class ViewScope(models.TextChoices):
    DAY = "day", "Day"
    WEEK = "week", "Week"
    MONTH = "month", "Month"


class AgencyScope(models.TextChoices):
    AGENCY = "agency", "Agency"
    GLOBAL = "global", "Global"


def _clean(value) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


@dataclass(frozen=True)
class ScheduleFilters:
    """
    What the console is currently looking at.

    ``date`` anchors every scope: the day itself, the week containing it, or
    the month containing it. A branch of ``"all"`` means no branch filter.
    """

    date: date
    branch_id: str | None = None
    agency_id: str | None = None
    scope: str | None = None

    def __post_init__(self):
        branch_id = _clean(self.branch_id)
        if branch_id is not None and branch_id.lower() == ALL_BRANCHES:
            branch_id = None
        object.__setattr__(self, "branch_id", branch_id)
        object.__setattr__(self, "agency_id", _clean(self.agency_id))
        object.__setattr__(self, "scope", _clean(self.scope))

    @property
    def agency_scoped(self) -> bool:
        return self.scope == AgencyScope.AGENCY or self.agency_id is not None

    def to_params(self, view: str) -> dict:
        """Query parameters for a registry call; empty values are left out."""
        if view == ViewScope.MONTH:
            params = {"year": self.date.year, "month": self.date.month}
        else:
            params = {"date": iso_date(self.date)}
        params["branchId"] = self.branch_id
        params["agencyId"] = self.agency_id
        return {key: value for key, value in params.items() if value not in (None, "")}
