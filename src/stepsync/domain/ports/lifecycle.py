"""Port for the platform lifecycle service."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from stepsync.domain.types import AppPhase


@runtime_checkable
class PhaseSubscription(Protocol):
    """Live stream of raw phase notifications; ``close`` ends iteration."""

    def __aiter__(self) -> AsyncIterator[AppPhase]: ...

    async def close(self) -> None: ...


@runtime_checkable
class PhaseSource(Protocol):
    """Platform lifecycle service. Both methods raise ``PlatformError`` on failure."""

    def current_phase(self) -> AppPhase: ...

    def subscribe(self) -> PhaseSubscription: ...


__all__ = ["PhaseSource", "PhaseSubscription"]
