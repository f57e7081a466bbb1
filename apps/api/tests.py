"""
Tests for the REST API.

This module tests:
- Registry credential authentication (header and session)
- Day, week and month schedule endpoints
- Error reporting when the registry fails

The registry itself is replaced by patching the client's async fetch methods.
"""

from datetime import date
from unittest.mock import patch

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from rest_framework import status
from rest_framework.test import APIClient

from apps.registry.client import (
    Credential,
    RegistryClient,
    RegistryError,
    RegistryPage,
    RegistryUnauthenticated,
)
from apps.registry.filters import ScheduleFilters, ViewScope

from .authentication import SESSION_KEY


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def make_page(*records):
    """Create a RegistryPage from raw records."""
    return RegistryPage(items=list(records), total=len(records))


def make_record(record_id, start_at, **kwargs):
    record = {"id": record_id, "startAt": start_at, "endAt": start_at[:11] + "23:00:00"}
    record.update(kwargs)
    return record


def patch_shifts(**kwargs):
    return patch.object(RegistryClient, "shifts", **kwargs)


def patch_counters(**kwargs):
    return patch.object(RegistryClient, "counters", **kwargs)


# =============================================================================
# AUTHENTICATION TESTS
# =============================================================================


class APIAuthenticationTests(TestCase):
    """Tests for registry credential authentication."""

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("api:schedule_week") + "?date=2024-03-06"

    def test_health_check_public(self):
        response = self.client.get(reverse("api:health"))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.json()["status"], "healthy")

    def test_missing_credential_returns_401_without_fetching(self):
        with patch_shifts() as shifts:
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        shifts.assert_not_called()

    def test_unknown_keyword_is_not_accepted(self):
        self.client.credentials(HTTP_AUTHORIZATION="Basic dXNlcjpwYXNz")

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_malformed_header_is_not_accepted(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer")

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_bearer_credential_is_accepted(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer abc123")

        with patch_shifts(return_value=make_page()):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_session_credential_is_accepted(self):
        session = self.client.session
        session[SESSION_KEY] = {"accessToken": "from-session", "tokenType": "Bearer"}
        session.save()

        with patch_shifts(return_value=make_page()):
            response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_session_without_token_is_rejected(self):
        session = self.client.session
        session[SESSION_KEY] = {"tokenType": "Bearer"}
        session.save()

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response["WWW-Authenticate"], "Bearer")


# =============================================================================
# SCHEDULE ENDPOINT TESTS
# =============================================================================


class ScheduleAPITestCase(TestCase):
    """Shared setup: an API client carrying a registry credential."""

    def setUp(self):
        self.client = APIClient()
        self.client.credentials(HTTP_AUTHORIZATION="Bearer test-access-token")


class DayScheduleAPITests(ScheduleAPITestCase):
    """Tests for GET /api/v1/schedule/day/."""

    def test_returns_shifts_and_counters(self):
        page = make_page(
            make_record("1", "2024-03-06T08:00:00", guardName="Sergeev I.P.", status="COMPLETED"),
            make_record("2", "2024-03-06T20:00:00", status="SCHEDULED"),
        )
        counters = {"totalToday": 2, "dayShifts": 1, "nightShifts": 1, "completed": 1}

        with patch_shifts(return_value=page), patch_counters(return_value=counters):
            response = self.client.get(reverse("api:schedule_day"), {"date": "2024-03-06"})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        data = response.json()
        self.assertEqual(data["total"], 2)
        self.assertEqual(data["counters"], {
            "total_today": 2, "day_shifts": 1, "night_shifts": 1, "completed": 1,
        })
        first, second = data["shifts"]
        self.assertEqual(first["guard_name"], "Sergeev I.P.")
        self.assertEqual(first["shift_type"], "day")
        self.assertEqual(first["status"], "completed")
        self.assertTrue(first["interactive"])
        self.assertEqual(second["shift_type"], "night")
        self.assertFalse(second["interactive"])
        self.assertEqual(second["date_key"], "2024-03-06")

    def test_filters_are_passed_through(self):
        with patch_shifts(return_value=make_page()) as shifts, patch_counters(return_value=None):
            response = self.client.get(
                reverse("api:schedule_day"),
                {"date": "2024-03-06", "branch": "b-1", "agency": "a-1", "scope": "agency"},
            )

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        view, filters = shifts.call_args.args
        self.assertEqual(view, ViewScope.DAY)
        self.assertEqual(
            filters,
            ScheduleFilters(date=date(2024, 3, 6), branch_id="b-1", agency_id="a-1", scope="agency"),
        )
        self.assertEqual(response.json()["filters"]["branch_id"], "b-1")

    def test_all_branches_sentinel(self):
        with patch_shifts(return_value=make_page()) as shifts, patch_counters(return_value=None):
            self.client.get(reverse("api:schedule_day"), {"date": "2024-03-06", "branch": "all"})

        _, filters = shifts.call_args.args
        self.assertIsNone(filters.branch_id)

    def test_date_defaults_to_today(self):
        with patch_shifts(return_value=make_page()), patch_counters(return_value=None):
            response = self.client.get(reverse("api:schedule_day"))

        self.assertEqual(response.json()["filters"]["date"], timezone.localdate().isoformat())

    def test_counters_derived_when_missing(self):
        page = make_page(make_record("1", "2024-03-06T21:00:00"))

        with patch_shifts(return_value=page), patch_counters(return_value={}):
            response = self.client.get(reverse("api:schedule_day"), {"date": "2024-03-06"})

        self.assertEqual(response.json()["counters"]["night_shifts"], 1)

    def test_counter_failure_returns_502(self):
        with patch_shifts(return_value=make_page()), patch_counters(side_effect=RegistryError("Failed to load shift counters")):
            response = self.client.get(reverse("api:schedule_day"), {"date": "2024-03-06"})

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.json()["detail"], "Failed to load shift counters")

    def test_invalid_date_returns_400(self):
        with patch_shifts() as shifts:
            response = self.client.get(reverse("api:schedule_day"), {"date": "06/03/2024"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        shifts.assert_not_called()

    def test_invalid_scope_returns_400(self):
        response = self.client.get(reverse("api:schedule_day"), {"scope": "galaxy"})

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class WeekScheduleAPITests(ScheduleAPITestCase):
    """Tests for GET /api/v1/schedule/week/."""

    def test_returns_week_and_buckets(self):
        page = make_page(
            make_record("1", "2024-03-05T08:00:00"),
            make_record("2", "2024-03-05T19:00:00"),
        )

        with patch_shifts(return_value=page):
            response = self.client.get(reverse("api:schedule_week"), {"date": "2024-03-06"})

        data = response.json()
        self.assertEqual(data["week"][0], "2024-03-04")
        self.assertEqual(data["week"][-1], "2024-03-10")
        self.assertEqual(list(data["buckets"]), data["week"])
        self.assertEqual([s["id"] for s in data["buckets"]["2024-03-05"]], ["1", "2"])
        self.assertEqual(data["buckets"]["2024-03-06"], [])

    def test_registry_failure_returns_502(self):
        with patch_shifts(side_effect=RegistryError("Failed to load week shift registry")):
            response = self.client.get(reverse("api:schedule_week"), {"date": "2024-03-06"})

        self.assertEqual(response.status_code, status.HTTP_502_BAD_GATEWAY)
        self.assertEqual(response.json(), {"detail": "Failed to load week shift registry"})

    def test_registry_rejecting_credential_returns_401(self):
        rejected = RegistryUnauthenticated("Token expired", status_code=401)

        with patch_shifts(side_effect=rejected):
            response = self.client.get(reverse("api:schedule_week"), {"date": "2024-03-06"})

        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
        self.assertEqual(response.json(), {"detail": "Token expired"})
        self.assertEqual(response["WWW-Authenticate"], "Bearer")

    def test_registry_session_is_closed_after_request(self):
        with patch_shifts(return_value=make_page()), patch.object(RegistryClient, "close") as close:
            self.client.get(reverse("api:schedule_week"), {"date": "2024-03-06"})

        close.assert_called_once_with()

    def test_registry_session_is_closed_after_failure(self):
        with patch_shifts(side_effect=RegistryError("Failed to load week shift registry")), \
                patch.object(RegistryClient, "close") as close:
            self.client.get(reverse("api:schedule_week"), {"date": "2024-03-06"})

        close.assert_called_once_with()


class MonthScheduleAPITests(ScheduleAPITestCase):
    """Tests for GET /api/v1/schedule/month/."""

    def test_returns_every_day_of_month(self):
        page = make_page(make_record("1", "2024-02-29T08:00:00"))

        with patch_shifts(return_value=page) as shifts:
            response = self.client.get(reverse("api:schedule_month"), {"date": "2024-02-10"})

        data = response.json()
        self.assertEqual(len(data["days"]), 29)
        self.assertEqual(len(data["buckets"]["2024-02-29"]), 1)
        self.assertEqual(shifts.call_args.args[0], ViewScope.MONTH)

    def test_credential_reaches_the_client(self):
        seen = []

        async def capture(client, view, filters):
            seen.append(client.credential)
            return make_page()

        with patch.object(RegistryClient, "shifts", autospec=True, side_effect=capture):
            self.client.get(reverse("api:schedule_month"), {"date": "2024-02-10"})

        self.assertEqual(seen, [Credential(access_token="test-access-token", token_type="Bearer")])


# =============================================================================
# PYTEST-STYLE TESTS (shared fixtures)
# =============================================================================


def test_week_endpoint_with_fixture_client(db, authenticated_api_client, raw_record):
    with patch_shifts(return_value=make_page(raw_record)):
        response = authenticated_api_client.get(reverse("api:schedule_week"), {"date": "2024-03-04"})

    assert response.status_code == 200
    assert response.json()["buckets"]["2024-03-04"][0]["branch_name"] == "Almaty Central Office"
