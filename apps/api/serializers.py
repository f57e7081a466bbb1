"""
Serializers for the REST API.

Read-only serializers for registry snapshots, plus validation of the
schedule query parameters.
"""

from django.utils import timezone
from rest_framework import serializers

from apps.registry.filters import AgencyScope, ScheduleFilters


class ScheduleQuerySerializer(serializers.Serializer):
    """Query parameters accepted by the schedule endpoints."""

    date = serializers.DateField(required=False)
    branch = serializers.CharField(required=False, allow_blank=True)
    agency = serializers.CharField(required=False, allow_blank=True)
    scope = serializers.ChoiceField(choices=AgencyScope.choices, required=False)

    def to_filters(self) -> ScheduleFilters:
        """Build filters from validated data; the date defaults to today."""
        data = self.validated_data
        return ScheduleFilters(
            date=data.get("date") or timezone.localdate(),
            branch_id=data.get("branch"),
            agency_id=data.get("agency"),
            scope=data.get("scope"),
        )


class ScheduleFiltersSerializer(serializers.Serializer):
    """Echo of the filters a snapshot was built for."""

    date = serializers.DateField(read_only=True)
    branch_id = serializers.CharField(read_only=True, allow_null=True)
    agency_id = serializers.CharField(read_only=True, allow_null=True)
    scope = serializers.CharField(read_only=True, allow_null=True)


class ShiftViewModelSerializer(serializers.Serializer):
    """Serializer for a normalized shift."""

    id = serializers.CharField(read_only=True)
    guard_id = serializers.CharField(read_only=True)
    guard_name = serializers.CharField(read_only=True)
    branch_name = serializers.CharField(read_only=True)
    checkpoint_name = serializers.CharField(read_only=True)
    agency_name = serializers.CharField(read_only=True)
    date_label = serializers.CharField(read_only=True)
    time_range_label = serializers.CharField(read_only=True)
    shift_type = serializers.CharField(read_only=True)
    status = serializers.CharField(read_only=True)
    raw_status = serializers.CharField(read_only=True, allow_null=True)
    date_key = serializers.CharField(read_only=True)
    interactive = serializers.BooleanField(read_only=True)


class DayCountersSerializer(serializers.Serializer):
    """Serializer for the selected day's counters."""

    total_today = serializers.IntegerField(read_only=True)
    day_shifts = serializers.IntegerField(read_only=True)
    night_shifts = serializers.IntegerField(read_only=True)
    completed = serializers.IntegerField(read_only=True)


def serialize_buckets(buckets) -> dict:
    """Date key -> list of serialized shifts, keeping bucket order."""
    return {
        key: ShiftViewModelSerializer(shifts, many=True).data
        for key, shifts in buckets.items()
    }
