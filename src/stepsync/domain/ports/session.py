"""Port for the authentication/session collaborator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from stepsync.domain.types import Identity


@runtime_checkable
class SessionProvider(Protocol):
    """Source of the current identity and its persisted sync cursor."""

    def current_identity(self) -> Identity | None: ...

    def last_sync_timestamp(self, identity: Identity) -> datetime | None: ...

    def persist_sync_timestamp(self, identity: Identity, timestamp: datetime) -> None: ...


@runtime_checkable
class ActivityLedger(Protocol):
    """Accumulation collaborator that accepted activity counts are applied to."""

    def credit(self, identity: Identity, count: int) -> None: ...


__all__ = ["ActivityLedger", "SessionProvider"]
