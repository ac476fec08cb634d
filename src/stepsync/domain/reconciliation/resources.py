"""Exclusive ownership of a releasable resource handle."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from stepsync.domain.ports.sensor import ReleasableResource

log = getLogger(__name__)


class ExclusiveResource[TResource: ReleasableResource]:
    """Single-slot owner: a previous handle is released before a new one is held.

    Release failures are logged and do not block the replacement.
    """

    def __init__(self, name: str, initial: TResource | None = None) -> None:
        self.name = name
        self._current: TResource | None = initial

    @property
    def current(self) -> TResource | None:
        return self._current

    async def replace(self, resource: TResource) -> TResource:
        if self._current is resource:
            return resource
        await self.release()
        self._current = resource
        log.debug("Acquired %s handle %r", self.name, resource)
        return resource

    async def release(self) -> None:
        previous, self._current = self._current, None
        if previous is None:
            return
        try:
            await previous.aclose()
        except Exception:
            log.exception("Failed to release %s handle %r", self.name, previous)
        else:
            log.debug("Released %s handle %r", self.name, previous)
