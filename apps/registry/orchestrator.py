"""
Registry fetch orchestration.

RegistryController owns one ScopeState per view scope (day, week, month).
Scopes are independent: each may have a request in flight at the same time,
and a failure in one never touches the others. Within a scope the most
recent request wins; older responses are dropped when they arrive.
"""

from __future__ import annotations

import asyncio
import logging
from types import MappingProxyType

from .buckets import calendar_buckets, group_by_date, month_dates, week_dates
from .client import (
    FALLBACK_MESSAGES,
    UNAUTHENTICATED_MESSAGE,
    Credential,
    RegistryClient,
    RegistryError,
    RegistryUnauthenticated,
)
from .counters import DayCounters
from .filters import ScheduleFilters, ViewScope
from .normalizer import normalize_all
from .state import (
    Failed,
    Requested,
    ScopeSnapshot,
    ScopeState,
    Succeeded,
    transition,
)

logger = logging.getLogger(__name__)


def _freeze(buckets: dict) -> MappingProxyType:
    return MappingProxyType({key: tuple(shifts) for key, shifts in buckets.items()})


class RegistryController:
    """
    Drives registry fetches for the console.

    ``source`` is anything with awaitable ``shifts(view, filters)`` and
    ``counters(filters)`` methods; by default a RegistryClient bound to the
    credential, which the controller closes in ``close()``.

    Once the registry rejects the credential the controller stops fetching:
    every later load fails as unauthenticated until a new controller is built
    with a fresh credential.
    """

    def __init__(self, credential: Credential | None, *, source=None):
        self.credential = credential
        self._owns_source = source is None
        self.source = RegistryClient(credential) if source is None else source
        self._states = {scope: ScopeState() for scope in ViewScope}
        self._rejected = False

    @property
    def authenticated(self) -> bool:
        if self._rejected:
            return False
        return self.credential is not None and self.credential.is_valid

    def close(self):
        if self._owns_source:
            self.source.close()

    def state(self, scope: str) -> ScopeState:
        return self._states[ViewScope(scope)]

    def _dispatch(self, scope: ViewScope, event) -> ScopeState:
        previous = self._states[scope]
        current = transition(previous, event)
        if current is previous:
            logger.debug(
                "Discarded stale %s response (generation %s, current %s)",
                scope.value, event.generation, previous.generation,
            )
        self._states[scope] = current
        return current

    async def load(self, scope: str, filters: ScheduleFilters) -> ScopeState:
        """
        Fetch one scope for the given filters.

        Returns the scope's state once this request has settled. When a newer
        request for the same scope was issued meanwhile, that newer state is
        what comes back.
        """
        scope = ViewScope(scope)
        generation = self._dispatch(scope, Requested(filters)).generation

        if not self.authenticated:
            logger.info("Skipping %s registry fetch: no credential", scope.value)
            return self._dispatch(scope, Failed(generation, UNAUTHENTICATED_MESSAGE, unauthenticated=True))

        logger.debug("Loading %s registry (generation %s) for %s", scope.value, generation, filters)
        try:
            snapshot = await self._fetch(scope, filters)
        except RegistryUnauthenticated as exc:
            logger.warning("Registry rejected the credential for %s: %s", scope.value, exc.message)
            self._rejected = True
            return self._dispatch(scope, Failed(generation, exc.message, unauthenticated=True))
        except RegistryError as exc:
            return self._dispatch(scope, Failed(generation, exc.message))
        except Exception:
            logger.exception("Unexpected error loading %s registry", scope.value)
            return self._dispatch(scope, Failed(generation, FALLBACK_MESSAGES[scope]))
        return self._dispatch(scope, Succeeded(generation, snapshot))

    async def load_day(self, filters: ScheduleFilters) -> ScopeState:
        return await self.load(ViewScope.DAY, filters)

    async def load_week(self, filters: ScheduleFilters) -> ScopeState:
        return await self.load(ViewScope.WEEK, filters)

    async def load_month(self, filters: ScheduleFilters) -> ScopeState:
        return await self.load(ViewScope.MONTH, filters)

    async def refresh(self, scope: str) -> ScopeState:
        """Re-issue the last requested filters for a scope."""
        state = self.state(scope)
        if state.filters is None:
            return state
        return await self.load(scope, state.filters)

    async def _fetch(self, scope: ViewScope, filters: ScheduleFilters) -> ScopeSnapshot:
        if scope == ViewScope.DAY:
            return await self._fetch_day(filters)

        page = await self.source.shifts(scope, filters)
        shifts = normalize_all(page.items)
        dates = week_dates(filters.date) if scope == ViewScope.WEEK else month_dates(filters.date)
        return ScopeSnapshot(
            shifts=shifts,
            buckets=_freeze(calendar_buckets(shifts, dates)),
            total=page.total,
            filters=filters,
        )

    async def _fetch_day(self, filters: ScheduleFilters) -> ScopeSnapshot:
        page, counters = await asyncio.gather(
            self.source.shifts(ViewScope.DAY, filters),
            self.source.counters(filters),
            return_exceptions=True,
        )
        for result in (page, counters):
            if isinstance(result, BaseException):
                raise result

        shifts = normalize_all(page.items)
        return ScopeSnapshot(
            shifts=shifts,
            buckets=_freeze(group_by_date(shifts)),
            counters=DayCounters.from_payload(counters, shifts),
            total=page.total,
            filters=filters,
        )
