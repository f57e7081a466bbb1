"""
HTTP client for the remote shift registry service.

Every call carries the caller's credential in the Authorization header:
    Authorization: <tokenType> <accessToken>

Requests are made with ``requests``; the async helpers hand the blocking call
to a worker via ``sync_to_async`` so the orchestrator can await them.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field

import requests
from asgiref.sync import sync_to_async

from .conf import registry_setting
from .filters import ScheduleFilters, ViewScope

logger = logging.getLogger(__name__)

REGISTRY_PATH = "/api/v1/shifts/registry"
AGENCY_REGISTRY_PATH = "/api/v1/shifts/registry/agency"

FALLBACK_MESSAGES = {
    ViewScope.DAY: "Failed to load day shift registry",
    ViewScope.WEEK: "Failed to load week shift registry",
    ViewScope.MONTH: "Failed to load month shift registry",
}
COUNTERS_FALLBACK_MESSAGE = "Failed to load shift counters"
UNAUTHENTICATED_MESSAGE = "Not signed in to the shift registry"

PAGE_SIZE_SETTINGS = {
    ViewScope.DAY: "DAY_PAGE_SIZE",
    ViewScope.WEEK: "WEEK_PAGE_SIZE",
    ViewScope.MONTH: "MONTH_PAGE_SIZE",
}


class RegistryError(Exception):
    """A registry call failed; ``message`` is safe to show to the user."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class RegistryUnauthenticated(RegistryError):
    """No usable credential, or the registry rejected it."""

    def __init__(self, message: str = UNAUTHENTICATED_MESSAGE, status_code: int | None = None):
        super().__init__(message, status_code=status_code)


@dataclass(frozen=True)
class Credential:
    """Opaque bearer credential issued by the registry's auth service."""

    access_token: str
    token_type: str = "Bearer"

    @property
    def is_valid(self) -> bool:
        return bool(self.access_token and self.access_token.strip())

    @property
    def header(self) -> str:
        return f"{self.token_type or 'Bearer'} {self.access_token}"

    @classmethod
    def from_payload(cls, payload) -> "Credential | None":
        """Build from an ``{accessToken, tokenType}`` mapping, if it has a token."""
        if not isinstance(payload, Mapping):
            return None
        access_token = payload.get("accessToken")
        if not isinstance(access_token, str) or not access_token.strip():
            return None
        token_type = payload.get("tokenType")
        if not isinstance(token_type, str) or not token_type.strip():
            token_type = "Bearer"
        return cls(access_token=access_token.strip(), token_type=token_type.strip())

    def as_payload(self) -> dict:
        return {"accessToken": self.access_token, "tokenType": self.token_type}


@dataclass(frozen=True)
class RegistryPage:
    items: list = field(default_factory=list)
    page: int = 0
    size: int = 0
    total: int = 0

    @classmethod
    def from_payload(cls, payload, *, page: int = 0, size: int = 0) -> "RegistryPage":
        if isinstance(payload, list):
            return cls(items=payload, page=page, size=size, total=len(payload))
        if not isinstance(payload, Mapping):
            return cls(page=page, size=size)

        items = payload.get("items")
        if not isinstance(items, list):
            items = []
        total = payload.get("total")
        if isinstance(total, bool) or not isinstance(total, int):
            total = len(items)
        if isinstance(payload.get("page"), int):
            page = payload["page"]
        if isinstance(payload.get("size"), int):
            size = payload["size"]
        return cls(items=items, page=page, size=size, total=total)


def _error_message(response, fallback: str) -> str:
    """Best-effort ``message`` from a JSON error body."""
    try:
        body = response.json()
    except ValueError:
        logger.debug("Registry error response had no JSON body (HTTP %s)", response.status_code)
        return fallback
    if isinstance(body, Mapping):
        message = body.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return fallback


class RegistryClient:
    """Paginated registry endpoints for the day, week and month scopes."""

    def __init__(self, credential: Credential | None, *, base_url=None, timeout=None, session=None):
        self.credential = credential
        self.base_url = (base_url or registry_setting("BASE_URL")).rstrip("/")
        self.timeout = timeout if timeout is not None else registry_setting("TIMEOUT")
        self._owns_session = session is None
        self.session = requests.Session() if session is None else session

    def close(self):
        """Close the HTTP session if this client opened it."""
        if self._owns_session:
            self.session.close()

    def _endpoint(self, segment: str, filters: ScheduleFilters) -> str:
        base_path = AGENCY_REGISTRY_PATH if filters.agency_scoped else REGISTRY_PATH
        return f"{self.base_url}{base_path}/{segment}"

    def _get(self, url: str, params: dict, fallback: str):
        if self.credential is None or not self.credential.is_valid:
            raise RegistryUnauthenticated()

        headers = {
            "Content-Type": "application/json",
            "Authorization": self.credential.header,
        }
        logger.debug("GET %s %s", url, params)
        try:
            response = self.session.get(url, params=params, headers=headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Registry request to %s failed: %s", url, exc)
            raise RegistryError(fallback) from exc

        if not response.ok:
            message = _error_message(response, fallback)
            logger.warning("Registry returned HTTP %s for %s: %s", response.status_code, url, message)
            if response.status_code == 401:
                raise RegistryUnauthenticated(message, status_code=response.status_code)
            raise RegistryError(message, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            logger.warning("Registry returned a non-JSON body for %s", url)
            raise RegistryError(fallback, status_code=response.status_code) from exc

    def fetch_page(self, view: str, filters: ScheduleFilters, *, page: int = 0, size: int | None = None) -> RegistryPage:
        """Fetch a single page of shift records for one scope."""
        view = ViewScope(view)
        size = size or registry_setting(PAGE_SIZE_SETTINGS[view])
        params = filters.to_params(view)
        params.update(page=page, size=size)
        payload = self._get(self._endpoint(view.value, filters), params, FALLBACK_MESSAGES[view])
        return RegistryPage.from_payload(payload, page=page, size=size)

    def fetch_all(self, view: str, filters: ScheduleFilters, *, size: int | None = None) -> RegistryPage:
        """
        Walk pages until the reported total is collected.

        Stops early on an empty page, and never requests more than
        ``MAX_PAGES`` pages for one call (at least one page is always read).
        """
        view = ViewScope(view)
        size = size or registry_setting(PAGE_SIZE_SETTINGS[view])
        items: list = []
        total = 0
        max_pages = max(1, registry_setting("MAX_PAGES"))
        for page_number in range(max_pages):
            page = self.fetch_page(view, filters, page=page_number, size=size)
            items.extend(page.items)
            total = page.total
            if not page.items or len(items) >= total:
                break
        else:
            logger.warning("Stopped paging %s registry after %s pages", view.value, page_number + 1)
        return RegistryPage(items=items, page=0, size=size, total=max(total, len(items)))

    def fetch_counters(self, filters: ScheduleFilters):
        """Raw day counters payload for the filters' date."""
        params = filters.to_params(ViewScope.DAY)
        return self._get(self._endpoint("day/counters", filters), params, COUNTERS_FALLBACK_MESSAGE)

    async def shifts(self, view: str, filters: ScheduleFilters) -> RegistryPage:
        return await sync_to_async(self.fetch_all, thread_sensitive=False)(view, filters)

    async def counters(self, filters: ScheduleFilters):
        return await sync_to_async(self.fetch_counters, thread_sensitive=False)(filters)
