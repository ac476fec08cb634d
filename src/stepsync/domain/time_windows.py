"""Clock helpers and reconciliation window derivation."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol

from .types import ReconciliationWindow


class Clock(Protocol):
    def __call__(self) -> datetime: ...


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        raise ValueError("Timestamps must include timezone information")
    return value.astimezone(UTC)


def window_since(last_synced_at: datetime | None, *, now: datetime) -> ReconciliationWindow:
    """Derive ``[last_synced_at, now)``.

    A missing cursor collapses to the empty window at ``now`` instead of an unbounded
    one, so activity recorded before tracking began is never reported. A cursor that
    lies in the future (clock skew between devices) also collapses to empty.
    """

    end = ensure_aware(now)
    if last_synced_at is None:
        return ReconciliationWindow.empty_at(end)
    start = ensure_aware(last_synced_at)
    if start >= end:
        return ReconciliationWindow.empty_at(start)
    return ReconciliationWindow(start=start, end=end)


__all__ = ["Clock", "ensure_aware", "utcnow", "window_since"]
