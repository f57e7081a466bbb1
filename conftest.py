"""
Pytest configuration and shared fixtures for the Guardpost project.

This module provides reusable fixtures for registry records, credentials and
API clients. Fixtures are designed to work with pytest-django.
"""

import pytest
from datetime import date

from rest_framework.test import APIClient


# =============================================================================
# CREDENTIAL FIXTURES
# =============================================================================


@pytest.fixture
def credential():
    """A registry bearer credential."""
    from apps.registry.client import Credential

    return Credential(access_token="test-access-token", token_type="Bearer")


@pytest.fixture
def blank_credential():
    """A credential without a usable token."""
    from apps.registry.client import Credential

    return Credential(access_token="   ")


# =============================================================================
# CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def api_client():
    """Provide a DRF API test client."""
    return APIClient()


@pytest.fixture
def authenticated_api_client(api_client, credential):
    """Provide an API client sending the registry credential."""
    api_client.credentials(HTTP_AUTHORIZATION=credential.header)
    return api_client


# =============================================================================
# RECORD FIXTURES
# =============================================================================


@pytest.fixture
def raw_record():
    """A fully populated registry item."""
    return {
        "id": "shift-1",
        "guardId": "g-1",
        "guardName": "Sergeev I.P.",
        "agencyId": "a-1",
        "agencyName": "Shield Agency",
        "branchId": "b-1",
        "branchName": "Almaty Central Office",
        "checkpointId": "c-1",
        "checkpointName": "Checkpoint 1 (Main gate)",
        "startAt": "2024-03-04T08:00:00",
        "endAt": "2024-03-04T20:00:00",
        "status": "COMPLETED",
        "kind": "DAY",
    }


@pytest.fixture
def empty_record():
    """A registry item with every optional field missing."""
    return {}


@pytest.fixture
def week_filters():
    """Filters anchored on Wednesday 2024-03-06."""
    from apps.registry.filters import ScheduleFilters

    return ScheduleFilters(date=date(2024, 3, 6))


# =============================================================================
# UTILITY FIXTURES
# =============================================================================


@pytest.fixture
def registry_page():
    """
    Factory for registry page payloads.

    Usage:
        def test_something(registry_page):
            payload = registry_page([{"id": "1"}], total=3)
    """

    def build(items, page=0, size=50, total=None):
        return {
            "items": list(items),
            "page": page,
            "size": size,
            "total": len(items) if total is None else total,
        }

    return build
