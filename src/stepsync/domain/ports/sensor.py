"""Port for the device motion sensor."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime


@runtime_checkable
class ReleasableResource(Protocol):
    """Exclusive handle that must be released before a replacement is acquired."""

    async def aclose(self) -> None: ...


@runtime_checkable
class MotionSensor(ReleasableResource, Protocol):
    """Untrusted sensor I/O.

    ``count_events`` returns the number of discrete motion events recorded strictly
    within ``[start, end)``. Implementations raise ``SensorUnavailable`` when the
    hardware or permission is absent and ``QueryError`` on transient failures.
    """

    async def is_available(self) -> bool: ...

    async def count_events(self, start: datetime, end: datetime) -> int: ...


__all__ = ["MotionSensor", "ReleasableResource"]
