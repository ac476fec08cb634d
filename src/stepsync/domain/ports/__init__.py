"""Domain port definitions for adapters."""

from __future__ import annotations

from .lifecycle import PhaseSource, PhaseSubscription
from .sensor import MotionSensor, ReleasableResource
from .session import ActivityLedger, SessionProvider

__all__ = [
    "ActivityLedger",
    "MotionSensor",
    "PhaseSource",
    "PhaseSubscription",
    "ReleasableResource",
    "SessionProvider",
]
