"""Value types shared by the reconciliation components."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from typing import NewType

Identity = NewType("Identity", str)


class AppPhase(StrEnum):
    """Raw phase reported by the platform lifecycle service."""

    ACTIVE = "active"
    BACKGROUND = "background"
    INACTIVE = "inactive"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str) -> AppPhase:
        try:
            return cls(value.strip().lower())
        except ValueError:
            return cls.UNKNOWN


class RunState(StrEnum):
    IDLE = "idle"
    IN_FLIGHT = "in_flight"


class Decision(StrEnum):
    """User decision on a pending result."""

    ACCEPT = "accept"
    DISCARD = "discard"


class RunOutcome(StrEnum):
    """Terminal step reached by a single reconciliation run."""

    NO_IDENTITY = "no_identity"
    NO_BASELINE = "no_baseline"
    COALESCED = "coalesced"
    EMPTY_WINDOW = "empty_window"
    SENSOR_UNAVAILABLE = "sensor_unavailable"
    QUERY_FAILED = "query_failed"
    BELOW_THRESHOLD = "below_threshold"
    PUBLISHED = "published"
    IDENTITY_CHANGED = "identity_changed"


@dataclass(frozen=True, slots=True)
class ReconciliationWindow:
    """Half-open interval ``[start, end)`` over which accrued activity is queried."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise ValueError("Reconciliation window bounds must include timezone information")
        if self.start > self.end:
            raise ValueError("Reconciliation window start must not be after end")

    @property
    def is_empty(self) -> bool:
        return self.start == self.end

    @classmethod
    def empty_at(cls, instant: datetime) -> ReconciliationWindow:
        return cls(start=instant, end=instant)


@dataclass(frozen=True, slots=True)
class PendingResult:
    """Unacknowledged activity count waiting for a user decision."""

    identity: Identity
    window: ReconciliationWindow
    count: int
    created_at: datetime

    def __post_init__(self) -> None:
        if self.count < 0:
            raise ValueError("Pending result count must be non-negative")


@dataclass(frozen=True, slots=True)
class ReconciliationRun:
    """Summary of one triggered run, returned to callers for logging and tests."""

    outcome: RunOutcome
    identity: Identity | None = None
    window: ReconciliationWindow | None = None
    count: int | None = None

    @property
    def published(self) -> bool:
        return self.outcome is RunOutcome.PUBLISHED


@dataclass(frozen=True, slots=True)
class BecameActive:
    """Normalized lifecycle event: the app returned to the foreground."""

    at: datetime
