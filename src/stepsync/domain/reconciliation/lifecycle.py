"""Foreground edge detection over raw platform phase notifications."""

from __future__ import annotations

from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING, Final

from stepsync.domain.errors import PlatformError
from stepsync.domain.time_windows import utcnow
from stepsync.domain.types import AppPhase, BecameActive

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from datetime import datetime, timedelta
    from types import TracebackType

    from stepsync.domain.ports.lifecycle import PhaseSource, PhaseSubscription
    from stepsync.domain.time_windows import Clock

log = getLogger(__name__)


class ForegroundState(StrEnum):
    ACTIVE = "active"
    BACKGROUND = "background"


class MonitorStatus(StrEnum):
    IDLE = "idle"
    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    CLOSED = "closed"


# (tracked state, raw phase) -> (next tracked state, emits BecameActive).
# Inactive and unknown phases are flicker and never move the tracked state.
TRANSITIONS: Final[dict[tuple[ForegroundState, AppPhase], tuple[ForegroundState, bool]]] = {
    (ForegroundState.BACKGROUND, AppPhase.ACTIVE): (ForegroundState.ACTIVE, True),
    (ForegroundState.BACKGROUND, AppPhase.BACKGROUND): (ForegroundState.BACKGROUND, False),
    (ForegroundState.BACKGROUND, AppPhase.INACTIVE): (ForegroundState.BACKGROUND, False),
    (ForegroundState.BACKGROUND, AppPhase.UNKNOWN): (ForegroundState.BACKGROUND, False),
    (ForegroundState.ACTIVE, AppPhase.ACTIVE): (ForegroundState.ACTIVE, False),
    (ForegroundState.ACTIVE, AppPhase.BACKGROUND): (ForegroundState.BACKGROUND, False),
    (ForegroundState.ACTIVE, AppPhase.INACTIVE): (ForegroundState.ACTIVE, False),
    (ForegroundState.ACTIVE, AppPhase.UNKNOWN): (ForegroundState.ACTIVE, False),
}


def _tracked_state(phase: AppPhase) -> ForegroundState:
    if phase is AppPhase.BACKGROUND:
        return ForegroundState.BACKGROUND
    return ForegroundState.ACTIVE


class LifecycleMonitor:
    """Turns raw phase notifications into a debounced ``BecameActive`` stream.

    Use as an async context manager: entering subscribes to the phase source and
    leaving closes the subscription. If the subscription cannot be established the
    monitor reports ``MonitorStatus.UNAVAILABLE`` and ``events()`` yields nothing,
    leaving the caller with startup-only reconciliation. A subscription that fails
    mid-stream degrades the same way: ``events()`` ends and the status flips to
    ``UNAVAILABLE``.
    """

    def __init__(
        self,
        source: PhaseSource,
        *,
        debounce: timedelta | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._source = source
        self._debounce = debounce
        self._clock = clock
        self._phase = self._initial_phase(source)
        self._state = _tracked_state(self._phase)
        self._last_emitted: datetime | None = None
        self._subscription: PhaseSubscription | None = None
        self.status = MonitorStatus.IDLE

    @staticmethod
    def _initial_phase(source: PhaseSource) -> AppPhase:
        try:
            return source.current_phase()
        except PlatformError:
            log.warning("Could not read the current app phase; assuming active", exc_info=True)
            return AppPhase.UNKNOWN

    @property
    def phase(self) -> AppPhase:
        return self._phase

    @property
    def state(self) -> ForegroundState:
        return self._state

    def observe(self, phase: AppPhase) -> BecameActive | None:
        """Apply one raw notification to the state machine."""

        self._phase = phase
        next_state, emits = TRANSITIONS[(self._state, phase)]
        self._state = next_state
        if not emits:
            return None
        now = self._clock()
        if (
            self._debounce is not None
            and self._last_emitted is not None
            and now - self._last_emitted < self._debounce
        ):
            log.debug("Debounced foreground transition at %s", now)
            return None
        self._last_emitted = now
        return BecameActive(at=now)

    async def __aenter__(self) -> LifecycleMonitor:
        try:
            self._subscription = self._source.subscribe()
        except PlatformError:
            log.warning(
                "Lifecycle notifications unavailable; falling back to startup-only reconciliation",
                exc_info=True,
            )
            self.status = MonitorStatus.UNAVAILABLE
        else:
            self.status = MonitorStatus.AVAILABLE
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()
        self.status = MonitorStatus.CLOSED

    async def events(self) -> AsyncIterator[BecameActive]:
        subscription = self._subscription
        if subscription is None:
            return
        iterator = aiter(subscription)
        while True:
            try:
                phase = await anext(iterator)
            except StopAsyncIteration:
                return
            except Exception:
                log.warning(
                    "Lifecycle notifications stopped; falling back to startup-only reconciliation",
                    exc_info=True,
                )
                self.status = MonitorStatus.UNAVAILABLE
                return
            event = self.observe(phase)
            if event is not None:
                yield event
