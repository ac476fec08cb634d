"""Per-identity sync watermark."""

from __future__ import annotations

from typing import TYPE_CHECKING

from stepsync.domain.errors import StaleAdvance
from stepsync.domain.time_windows import ensure_aware

if TYPE_CHECKING:
    from datetime import datetime

    from stepsync.domain.types import Identity


class SyncCursor:
    """Holds the last reconciled timestamp per identity.

    The cursor never moves backwards. Persisting an advanced value to the session
    collaborator is the engine's job; this class only guards the in-memory value.
    """

    def __init__(self) -> None:
        self._positions: dict[Identity, datetime | None] = {}

    def __contains__(self, identity: object) -> bool:
        return identity in self._positions

    def seed(self, identity: Identity, timestamp: datetime | None) -> None:
        """Load the persisted position for ``identity`` if none is held yet."""

        if identity in self._positions:
            return
        self._positions[identity] = ensure_aware(timestamp) if timestamp is not None else None

    def read(self, identity: Identity) -> datetime | None:
        return self._positions.get(identity)

    def check_advance(self, identity: Identity, to: datetime) -> bool:
        """Return whether advancing to ``to`` would change the cursor, without moving it.

        Raises ``StaleAdvance`` if ``to`` lies before the current position.
        """

        target = ensure_aware(to)
        current = self._positions.get(identity)
        if current is not None and target < current:
            raise StaleAdvance(identity, current=current, requested=target)
        return current != target

    def advance(self, identity: Identity, to: datetime) -> bool:
        """Move the cursor forward; return whether the stored value changed."""

        changed = self.check_advance(identity, to)
        self._positions[identity] = ensure_aware(to)
        return changed

    def forget(self, identity: Identity) -> None:
        self._positions.pop(identity, None)

    def retain_only(self, identity: Identity) -> None:
        for other in [key for key in self._positions if key != identity]:
            del self._positions[other]
