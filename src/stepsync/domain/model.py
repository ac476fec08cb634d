"""Persistent session profile owned by the identity collaborator."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from datetime import datetime

    from .types import Identity


@dataclass(eq=False)
class SessionProfile:
    """Signed-in identity plus the facts reconciliation reads and writes back.

    ``last_sync_time`` is the persisted cursor; ``steps_banked`` accumulates accepted
    counts. ``is_current`` marks the identity the device is signed in as.
    """

    identity: Identity
    last_sync_time: datetime | None = None
    steps_banked: int = 0
    is_current: bool = False

    def bank(self, count: int) -> int:
        if count < 0:
            raise ValueError("Cannot bank a negative activity count")
        self.steps_banked += count
        return self.steps_banked
