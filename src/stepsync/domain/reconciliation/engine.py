"""Orchestrator for offline activity reconciliation.

Each trigger (a foreground transition, or the eager run at startup) queries the
motion sensor for activity accrued over ``[cursor, now)`` and either reconciles the
gap silently or publishes a pending result for the user to accept or discard.

Runs are cooperative: the only suspension points are the sensor availability check
and the count query. The per-identity run state is flipped to ``IN_FLIGHT`` before
the first suspension and restored in a ``finally`` block, so an error mid-query can
never wedge reconciliation off for that identity. Triggers arriving while a run is
in flight are dropped rather than queued; the cursor has not moved, so the next
trigger picks up the wider window anyway.
"""

from __future__ import annotations

from contextlib import contextmanager
from logging import getLogger
from typing import TYPE_CHECKING

from stepsync.config.reconciliation import ReconciliationConfig
from stepsync.domain.errors import PlatformError, QueryError, SensorUnavailable, StaleAdvance
from stepsync.domain.time_windows import utcnow, window_since
from stepsync.domain.types import (
    Decision,
    PendingResult,
    ReconciliationRun,
    ReconciliationWindow,
    RunOutcome,
    RunState,
)

from .cursor import SyncCursor
from .pending import PendingResultStore

if TYPE_CHECKING:
    from collections.abc import Iterator
    from datetime import datetime

    from stepsync.domain.ports.session import ActivityLedger, SessionProvider
    from stepsync.domain.time_windows import Clock
    from stepsync.domain.types import Identity

    from .gateway import SensorGateway

log = getLogger(__name__)


class ReconciliationEngine:
    """Reconcile sensor activity accrued while the app was away."""

    def __init__(
        self,
        *,
        sessions: SessionProvider,
        gateway: SensorGateway,
        pending: PendingResultStore | None = None,
        cursor: SyncCursor | None = None,
        ledger: ActivityLedger | None = None,
        config: ReconciliationConfig | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._sessions = sessions
        self._gateway = gateway
        self._pending = pending or PendingResultStore()
        self._cursor = cursor or SyncCursor()
        self._ledger = ledger
        self._config = config or ReconciliationConfig()
        self._clock = clock
        self._run_states: dict[Identity, RunState] = {}
        self._scope: Identity | None = None
        self._pending.add_listener(self._on_acknowledged)

    @property
    def pending(self) -> PendingResultStore:
        return self._pending

    @property
    def cursor(self) -> SyncCursor:
        return self._cursor

    @property
    def gateway(self) -> SensorGateway:
        return self._gateway

    @property
    def config(self) -> ReconciliationConfig:
        return self._config

    def run_state(self, identity: Identity) -> RunState:
        return self._run_states.get(identity, RunState.IDLE)

    async def trigger(self, *, reason: str = "foreground") -> ReconciliationRun:
        """Run one reconciliation for the current identity.

        Never raises for sensor or platform failures; the returned run records which
        terminal step was reached.
        """

        identity = self._sessions.current_identity()
        if identity is None:
            log.debug("No identity resolved; skipping %s reconciliation", reason)
            return ReconciliationRun(outcome=RunOutcome.NO_IDENTITY)

        if self.run_state(identity) is RunState.IN_FLIGHT:
            log.debug(
                "Reconciliation already in flight for %s; dropping %s trigger", identity, reason
            )
            return ReconciliationRun(outcome=RunOutcome.COALESCED, identity=identity)

        self._enter_scope(identity)
        now = self._clock()
        last_synced_at = self._read_cursor(identity)

        if last_synced_at is None and not self._config.establish_baseline:
            log.info("No sync baseline recorded for %s; nothing to reconcile", identity)
            return ReconciliationRun(
                outcome=RunOutcome.NO_BASELINE,
                identity=identity,
                window=ReconciliationWindow.empty_at(now),
            )

        window = window_since(last_synced_at, now=now)
        if window.is_empty:
            self._advance_quietly(identity, window.end)
            return ReconciliationRun(
                outcome=RunOutcome.EMPTY_WINDOW, identity=identity, window=window, count=0
            )

        with self._in_flight(identity):
            run = await self._reconcile(identity, window)

        log.info(
            "Reconciliation (%s) for %s over [%s, %s): %s",
            reason,
            identity,
            window.start.isoformat(),
            window.end.isoformat(),
            run.outcome,
        )
        return run

    def acknowledge(
        self,
        identity: Identity,
        decision: Decision = Decision.ACCEPT,
    ) -> PendingResult | None:
        """Resolve the pending result for ``identity`` on behalf of the UI.

        Returns the resolved result, or ``None`` if nothing was pending or the decision
        could not be recorded. In the latter case the result stays pending.
        """

        try:
            return self._pending.acknowledge(identity, decision)
        except Exception:
            log.exception("Could not record %s decision for %s; result kept pending", decision, identity)
            return None

    async def _reconcile(
        self,
        identity: Identity,
        window: ReconciliationWindow,
    ) -> ReconciliationRun:
        try:
            available = await self._gateway.is_available()
        except PlatformError:
            log.info("Sensor availability check failed for %s", identity, exc_info=True)
            available = False
        if not available:
            return ReconciliationRun(
                outcome=RunOutcome.SENSOR_UNAVAILABLE, identity=identity, window=window
            )

        try:
            count = await self._gateway.count_events(window)
        except SensorUnavailable as exc:
            log.info("Motion sensor unavailable for %s: %s", identity, exc)
            return ReconciliationRun(
                outcome=RunOutcome.SENSOR_UNAVAILABLE, identity=identity, window=window
            )
        except QueryError:
            log.warning("Sensor count query failed for %s; will retry", identity, exc_info=True)
            return ReconciliationRun(
                outcome=RunOutcome.QUERY_FAILED, identity=identity, window=window
            )

        if self._sessions.current_identity() != identity:
            log.info(
                "Identity changed while querying for %s; discarding %s events", identity, count
            )
            return ReconciliationRun(
                outcome=RunOutcome.IDENTITY_CHANGED, identity=identity, window=window, count=count
            )

        if count <= self._config.significance_threshold:
            self._advance_quietly(identity, window.end)
            return ReconciliationRun(
                outcome=RunOutcome.BELOW_THRESHOLD, identity=identity, window=window, count=count
            )

        self._pending.publish(
            PendingResult(identity=identity, window=window, count=count, created_at=self._clock())
        )
        return ReconciliationRun(
            outcome=RunOutcome.PUBLISHED, identity=identity, window=window, count=count
        )

    @contextmanager
    def _in_flight(self, identity: Identity) -> Iterator[None]:
        self._run_states[identity] = RunState.IN_FLIGHT
        try:
            yield
        finally:
            self._run_states[identity] = RunState.IDLE

    def _enter_scope(self, identity: Identity) -> None:
        if self._scope == identity:
            return
        if self._scope is not None:
            log.info("Identity switched from %s to %s", self._scope, identity)
        self._cursor.retain_only(identity)
        self._scope = identity

    def _read_cursor(self, identity: Identity) -> datetime | None:
        if identity not in self._cursor:
            self._cursor.seed(identity, self._sessions.last_sync_timestamp(identity))
        return self._cursor.read(identity)

    def _advance(self, identity: Identity, to: datetime) -> bool:
        """Persist ``to`` and then move the in-memory cursor.

        Raises ``StaleAdvance`` for a backwards move and propagates persistence
        failures; in both cases the cursor keeps its previous value.
        """

        self._read_cursor(identity)
        if not self._cursor.check_advance(identity, to):
            return False
        self._sessions.persist_sync_timestamp(identity, to)
        self._cursor.advance(identity, to)
        return True

    def _advance_quietly(self, identity: Identity, to: datetime) -> bool:
        try:
            return self._advance(identity, to)
        except StaleAdvance:
            log.exception("Sync cursor invariant violated")
        except Exception:
            log.exception(
                "Failed to persist sync cursor for %s; next run re-queries from the old value",
                identity,
            )
        return False

    def _on_acknowledged(self, result: PendingResult, decision: Decision) -> None:
        try:
            moved = self._advance(result.identity, result.window.end)
        except StaleAdvance:
            log.exception("Sync cursor invariant violated")
            return
        if not moved:
            log.info(
                "Sync cursor for %s already at %s",
                result.identity,
                result.window.end.isoformat(),
            )
        if decision is Decision.ACCEPT and self._ledger is not None:
            self._ledger.credit(result.identity, result.count)
        log.info("Acknowledged (%s) %s events for %s", decision, result.count, result.identity)
