"""
Per-scope fetch state machine.

    idle -> loading -> ready | error
    ready | error -> loading   (a new request supersedes the previous one)

Each request bumps the scope's generation. A response is only applied when
it answers the current generation; anything older is a stale response and
leaves the state untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType

from django.db import models

from .counters import DayCounters
from .filters import ScheduleFilters


class ScopeStatus(models.TextChoices):
    IDLE = "idle", "Idle"
    LOADING = "loading", "Loading"
    READY = "ready", "Ready"
    ERROR = "error", "Error"


@dataclass(frozen=True)
class ScopeSnapshot:
    """Read-only result of one fetch cycle."""

    shifts: tuple = ()
    buckets: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))
    counters: DayCounters | None = None
    total: int = 0
    filters: ScheduleFilters | None = None


EMPTY_SNAPSHOT = ScopeSnapshot()


@dataclass(frozen=True)
class ScopeState:
    status: str = ScopeStatus.IDLE
    data: ScopeSnapshot = EMPTY_SNAPSHOT
    error: str | None = None
    generation: int = 0
    filters: ScheduleFilters | None = None
    # Set when the registry refused the credential; the caller must sign in again
    unauthenticated: bool = False

    @property
    def is_loading(self) -> bool:
        return self.status == ScopeStatus.LOADING


@dataclass(frozen=True)
class Requested:
    filters: ScheduleFilters


@dataclass(frozen=True)
class Succeeded:
    generation: int
    data: ScopeSnapshot


@dataclass(frozen=True)
class Failed:
    generation: int
    message: str
    unauthenticated: bool = False


def transition(state: ScopeState, event) -> ScopeState:
    """Apply an event to a scope state and return the resulting state."""
    if isinstance(event, Requested):
        # Previous data stays visible while the new request is in flight
        return replace(
            state,
            status=ScopeStatus.LOADING,
            error=None,
            unauthenticated=False,
            generation=state.generation + 1,
            filters=event.filters,
        )

    if isinstance(event, (Succeeded, Failed)):
        if event.generation != state.generation:
            return state
        if isinstance(event, Succeeded):
            return replace(state, status=ScopeStatus.READY, data=event.data, error=None)
        return replace(
            state,
            status=ScopeStatus.ERROR,
            data=EMPTY_SNAPSHOT,
            error=event.message,
            unauthenticated=event.unauthenticated,
        )

    raise TypeError(f"Unknown scope event: {event!r}")
