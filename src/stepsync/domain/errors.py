"""Error taxonomy for offline activity reconciliation.

None of these reach the UI collaborator: the engine absorbs platform and sensor
failures locally and the user only ever observes the absence of a prompt.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .types import Identity


class ReconciliationError(RuntimeError):
    """Base class for reconciliation failures."""


class PlatformError(ReconciliationError):
    """Raised when the lifecycle service or a sensor subscription fails."""


class SensorUnavailable(ReconciliationError):
    """Raised when the motion sensor is absent or permission was not granted."""


class QueryError(ReconciliationError):
    """Raised when a windowed count query fails transiently."""


class StaleAdvance(ReconciliationError):
    """Raised when a cursor is asked to move backwards."""

    def __init__(self, identity: Identity, *, current: datetime, requested: datetime) -> None:
        super().__init__(
            f"Refusing to move sync cursor for {identity!r} back from "
            f"{current.isoformat()} to {requested.isoformat()}"
        )
        self.identity = identity
        self.current = current
        self.requested = requested
