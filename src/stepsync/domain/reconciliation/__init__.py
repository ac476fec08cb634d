"""Offline activity reconciliation core.

Flow: lifecycle monitor -> engine (trigger) -> sync cursor (window) -> sensor
gateway (query) -> engine (threshold policy) -> pending result store (publish) ->
UI (acknowledge) -> sync cursor (advance).
"""

from __future__ import annotations

from .cursor import SyncCursor
from .engine import ReconciliationEngine
from .gateway import SensorGateway
from .lifecycle import ForegroundState, LifecycleMonitor, MonitorStatus
from .pending import PendingResultStore
from .resources import ExclusiveResource

__all__ = [
    "ExclusiveResource",
    "ForegroundState",
    "LifecycleMonitor",
    "MonitorStatus",
    "PendingResultStore",
    "ReconciliationEngine",
    "SensorGateway",
    "SyncCursor",
]
