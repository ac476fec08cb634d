"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
from logging import getLogger
from typing import TYPE_CHECKING

from stepsync.adapters.motion_service import MotionServiceSensor
from stepsync.adapters.sqlalchemy import SqlAlchemySessionStore
from stepsync.adapters.sqlalchemy.unit_of_work import is_started, startup
from stepsync.config import get_reconciliation_config, get_sensor_service_config
from stepsync.domain.reconciliation import (
    LifecycleMonitor,
    MonitorStatus,
    ReconciliationEngine,
    SensorGateway,
)
from stepsync.domain.time_windows import utcnow

if TYPE_CHECKING:
    from types import TracebackType

    from stepsync.config import ReconciliationConfig
    from stepsync.domain.ports import ActivityLedger, MotionSensor, PhaseSource, SessionProvider
    from stepsync.domain.time_windows import Clock
    from stepsync.domain.types import Decision, PendingResult, ReconciliationRun

log = getLogger(__name__)


def build_engine(
    *,
    sessions: SessionProvider,
    sensor: MotionSensor | None,
    ledger: ActivityLedger | None = None,
    config: ReconciliationConfig | None = None,
    clock: Clock = utcnow,
) -> ReconciliationEngine:
    """Wire a reconciliation engine around the given collaborators."""

    return ReconciliationEngine(
        sessions=sessions,
        gateway=SensorGateway(sensor),
        ledger=ledger,
        config=config or get_reconciliation_config(),
        clock=clock,
    )


async def reconcile_once(engine: ReconciliationEngine) -> ReconciliationRun:
    """Perform the startup-only reconciliation and release the sensor handle."""

    try:
        return await engine.trigger(reason="startup")
    finally:
        await engine.gateway.close()


def open_session_store(*, database_uri: str | None = None) -> SqlAlchemySessionStore:
    """Return the persistent session store, initialising the database on first use."""

    if not is_started():
        startup(database_uri=database_uri)
    return SqlAlchemySessionStore()


def check_offline_activity(
    *,
    decision: Decision | None = None,
    store: SqlAlchemySessionStore | None = None,
    sensor: MotionSensor | None = None,
    config: ReconciliationConfig | None = None,
) -> tuple[ReconciliationRun, PendingResult | None]:
    """Run one startup reconciliation for the signed-in identity.

    When ``decision`` is given, a published result is acknowledged immediately.
    Returns the run and the result that was pending after it (if any).
    """

    effective_store = store if store is not None else open_session_store()
    effective_sensor = (
        sensor
        if sensor is not None
        else MotionServiceSensor(resilience=get_sensor_service_config().resilience)
    )
    engine = build_engine(
        sessions=effective_store,
        sensor=effective_sensor,
        ledger=effective_store,
        config=config,
    )
    run = asyncio.run(reconcile_once(engine))

    pending = engine.pending.peek(run.identity) if run.identity is not None else None
    if pending is not None and decision is not None:
        engine.acknowledge(pending.identity, decision)
    return run, pending


class ReconciliationService:
    """Lifetime of the reconciliation feature inside a running app.

    Entering subscribes to lifecycle notifications and schedules the eager startup
    run; every ``BecameActive`` event schedules one more run. Runs are spawned as
    independent tasks so the engine can drop triggers that overlap a run in flight.
    Leaving stops consuming events, waits for runs already started, unsubscribes
    and releases the sensor handle.
    """

    def __init__(
        self,
        engine: ReconciliationEngine,
        source: PhaseSource | None = None,
        *,
        clock: Clock = utcnow,
    ) -> None:
        self._engine = engine
        self._monitor = (
            LifecycleMonitor(source, debounce=engine.config.debounce, clock=clock)
            if source is not None
            else None
        )
        self._consumer: asyncio.Task[None] | None = None
        self._runs: set[asyncio.Task[ReconciliationRun]] = set()
        self.last_run: ReconciliationRun | None = None

    @property
    def engine(self) -> ReconciliationEngine:
        return self._engine

    @property
    def monitor(self) -> LifecycleMonitor | None:
        return self._monitor

    async def __aenter__(self) -> ReconciliationService:
        if self._monitor is not None:
            await self._monitor.__aenter__()
        self._spawn("startup")
        if self._monitor is not None and self._monitor.status is MonitorStatus.AVAILABLE:
            self._consumer = asyncio.create_task(self._consume(self._monitor))
        else:
            log.info("Reconciliation limited to startup run")
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        consumer, self._consumer = self._consumer, None
        if consumer is not None:
            consumer.cancel()
            try:
                await consumer
            except asyncio.CancelledError:
                pass
            except Exception:
                log.exception("Lifecycle event consumer crashed")
        try:
            await self.wait_idle()
        finally:
            try:
                if self._monitor is not None:
                    await self._monitor.aclose()
            finally:
                await self._engine.gateway.close()

    async def wait_idle(self) -> None:
        """Wait until every run spawned so far has finished."""

        while self._runs:
            await asyncio.gather(*self._runs, return_exceptions=True)

    async def _consume(self, monitor: LifecycleMonitor) -> None:
        async for _event in monitor.events():
            self._spawn("foreground")
        if monitor.status is MonitorStatus.UNAVAILABLE:
            log.info("Reconciliation limited to runs already started")

    def _spawn(self, reason: str) -> None:
        task = asyncio.create_task(self._engine.trigger(reason=reason))
        self._runs.add(task)
        task.add_done_callback(self._on_run_done)

    def _on_run_done(self, task: asyncio.Task[ReconciliationRun]) -> None:
        self._runs.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            log.error("Reconciliation run crashed", exc_info=exc)
            return
        self.last_run = task.result()
