"""In-process lifecycle source fed by the host application."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING, Final

from stepsync.domain.errors import PlatformError
from stepsync.domain.types import AppPhase

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from stepsync.domain.ports.lifecycle import PhaseSource, PhaseSubscription

log = getLogger(__name__)

_CLOSED: Final = object()


class QueueSubscription:
    """One subscriber's channel; iteration ends once ``close`` is called."""

    def __init__(self, source: QueuePhaseSource) -> None:
        self._source = source
        self._queue: asyncio.Queue[AppPhase | object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, phase: AppPhase) -> None:
        if not self._closed:
            self._queue.put_nowait(phase)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._source.unsubscribe(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> AsyncIterator[AppPhase]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[AppPhase]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED or not isinstance(item, AppPhase):
                return
            yield item


class QueuePhaseSource:
    """Fan-out of raw phase notifications pushed with ``publish``.

    ``available=False`` models a platform where change notifications cannot be
    subscribed to; ``subscribe`` then raises ``PlatformError``.
    """

    def __init__(self, initial: AppPhase = AppPhase.ACTIVE, *, available: bool = True) -> None:
        self._phase = initial
        self._available = available
        self._subscribers: list[QueueSubscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def current_phase(self) -> AppPhase:
        return self._phase

    def subscribe(self) -> QueueSubscription:
        if not self._available:
            raise PlatformError("Lifecycle change notifications are not available")
        subscription = QueueSubscription(self)
        self._subscribers.append(subscription)
        return subscription

    def unsubscribe(self, subscription: QueueSubscription) -> None:
        if subscription in self._subscribers:
            self._subscribers.remove(subscription)

    def publish(self, phase: AppPhase | str) -> None:
        resolved = phase if isinstance(phase, AppPhase) else AppPhase.parse(phase)
        self._phase = resolved
        log.debug("Lifecycle phase -> %s (%d subscribers)", resolved, len(self._subscribers))
        for subscription in list(self._subscribers):
            subscription.deliver(resolved)


if TYPE_CHECKING:
    _source_check: PhaseSource = QueuePhaseSource()
    _subscription_check: PhaseSubscription = QueueSubscription(QueuePhaseSource())
