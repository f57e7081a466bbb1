"""REST API views."""

from asgiref.sync import async_to_sync
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import NotAuthenticated
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.registry.buckets import iso_date, month_dates, week_dates
from apps.registry.filters import ViewScope
from apps.registry.orchestrator import RegistryController
from apps.registry.state import ScopeStatus

from .serializers import (
    DayCountersSerializer,
    ScheduleFiltersSerializer,
    ScheduleQuerySerializer,
    ShiftViewModelSerializer,
    serialize_buckets,
)


@api_view(["GET"])
@permission_classes([AllowAny])
def health_check(request: Request) -> Response:
    """Health check endpoint."""
    return Response({"status": "healthy", "service": "guardpost"})


class ScheduleScopeView(APIView):
    """
    Base view for one registry scope.

    Each request gets its own controller, so nothing is shared between
    requests. A credential the registry rejects is reported as 401 so the
    console can ask the user to sign in again; any other failed registry
    call is reported as 502 with the user-facing message.
    """

    scope = None

    def get(self, request: Request) -> Response:
        query = ScheduleQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        filters = query.to_filters()

        controller = RegistryController(request.auth)
        try:
            state = async_to_sync(controller.load)(self.scope, filters)
        finally:
            controller.close()

        if state.unauthenticated:
            raise NotAuthenticated(state.error)
        if state.status == ScopeStatus.ERROR:
            return Response({"detail": state.error}, status=status.HTTP_502_BAD_GATEWAY)

        snapshot = state.data
        data = {
            "filters": ScheduleFiltersSerializer(filters).data,
            "total": snapshot.total,
        }
        data.update(self.render_snapshot(snapshot))
        return Response(data)

    def render_snapshot(self, snapshot) -> dict:
        raise NotImplementedError


class DayScheduleView(ScheduleScopeView):
    """GET /api/v1/schedule/day/ - Shifts and counters for one day."""
    scope = ViewScope.DAY

    def render_snapshot(self, snapshot) -> dict:
        return {
            "shifts": ShiftViewModelSerializer(snapshot.shifts, many=True).data,
            "counters": DayCountersSerializer(snapshot.counters).data,
        }


class WeekScheduleView(ScheduleScopeView):
    """GET /api/v1/schedule/week/ - Monday-to-Sunday calendar."""
    scope = ViewScope.WEEK

    def render_snapshot(self, snapshot) -> dict:
        return {
            "week": [iso_date(day) for day in week_dates(snapshot.filters.date)],
            "buckets": serialize_buckets(snapshot.buckets),
        }


class MonthScheduleView(ScheduleScopeView):
    """GET /api/v1/schedule/month/ - Calendar for the month of the given date."""
    scope = ViewScope.MONTH

    def render_snapshot(self, snapshot) -> dict:
        return {
            "days": [iso_date(day) for day in month_dates(snapshot.filters.date)],
            "buckets": serialize_buckets(snapshot.buckets),
        }
