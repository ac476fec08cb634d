from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import timedelta

import pytest

from stepsync.adapters.lifecycle import QueuePhaseSource
from stepsync.app import ReconciliationService, build_engine, reconcile_once
from stepsync.config import ReconciliationConfig
from stepsync.domain.reconciliation import MonitorStatus, ReconciliationEngine
from stepsync.domain.types import AppPhase, Identity, RunOutcome
from tests.helpers.fakes import (
    ALICE,
    T0,
    BrokenPhaseSource,
    FakeMotionSensor,
    FakeSessions,
    MutableClock,
)

LATER = T0 + timedelta(hours=2)


async def _settle(service: ReconciliationService) -> None:
    for _ in range(5):
        await asyncio.sleep(0)
    await service.wait_idle()


def _engine_for(
    sessions: FakeSessions, sensor: FakeMotionSensor, clock: MutableClock
) -> ReconciliationEngine:
    return build_engine(
        sessions=sessions,
        sensor=sensor,
        ledger=sessions,
        config=ReconciliationConfig(),
        clock=clock,
    )


def test_service_reconciles_at_startup_and_on_foreground() -> None:
    sessions = FakeSessions(timestamps={ALICE: T0})
    sensor = FakeMotionSensor(counts=[5, 120])
    clock = MutableClock(LATER)
    source = QueuePhaseSource(AppPhase.ACTIVE)

    async def scenario() -> None:
        engine = _engine_for(sessions, sensor, clock)
        async with ReconciliationService(engine, source, clock=clock) as service:
            await _settle(service)
            assert service.last_run is not None
            assert service.last_run.outcome is RunOutcome.BELOW_THRESHOLD

            source.publish(AppPhase.BACKGROUND)
            resumed_at = clock.advance(timedelta(hours=1))
            source.publish(AppPhase.INACTIVE)
            source.publish(AppPhase.ACTIVE)
            await _settle(service)

            assert service.last_run.published
            pending = engine.pending.peek(ALICE)
            assert pending is not None
            assert (pending.window.start, pending.window.end) == (LATER, resumed_at)

        assert sensor.closed
        assert source.subscriber_count == 0

    asyncio.run(scenario())

    assert sensor.count_calls == [(T0, LATER), (LATER, LATER + timedelta(hours=1))]


def test_service_without_lifecycle_notifications_runs_startup_only() -> None:
    sessions = FakeSessions(timestamps={ALICE: T0})
    sensor = FakeMotionSensor(counts=[5])
    clock = MutableClock(LATER)
    source = QueuePhaseSource(AppPhase.ACTIVE, available=False)

    async def scenario() -> None:
        engine = _engine_for(sessions, sensor, clock)
        async with ReconciliationService(engine, source, clock=clock) as service:
            await _settle(service)
            assert service.monitor is not None
            assert service.monitor.status is MonitorStatus.UNAVAILABLE
            assert service.last_run is not None
            assert service.last_run.outcome is RunOutcome.BELOW_THRESHOLD

    asyncio.run(scenario())

    assert len(sensor.count_calls) == 1
    assert sensor.closed


def test_service_logs_crashed_runs(caplog: pytest.LogCaptureFixture) -> None:
    @dataclass
    class BrokenSessions(FakeSessions):
        def current_identity(self) -> Identity | None:
            raise RuntimeError("keychain locked")

    sessions = BrokenSessions()
    sensor = FakeMotionSensor()
    clock = MutableClock(LATER)

    async def scenario() -> ReconciliationService:
        engine = _engine_for(sessions, sensor, clock)
        async with ReconciliationService(engine, clock=clock) as service:
            await _settle(service)
        return service

    with caplog.at_level(logging.ERROR, logger="stepsync.app"):
        service = asyncio.run(scenario())

    assert service.last_run is None
    assert "Reconciliation run crashed" in caplog.text
    assert sensor.closed


def test_reconcile_once_releases_sensor() -> None:
    sessions = FakeSessions(timestamps={ALICE: T0})
    sensor = FakeMotionSensor(counts=[120])
    engine = _engine_for(sessions, sensor, MutableClock(LATER))

    run = asyncio.run(reconcile_once(engine))

    assert run.published
    assert sensor.closed
    assert engine.gateway.sensor is None


def test_lifecycle_failure_mid_stream_degrades_and_still_releases_resources(
    caplog: pytest.LogCaptureFixture,
) -> None:
    sessions = FakeSessions(timestamps={ALICE: T0})
    sensor = FakeMotionSensor(counts=[5])
    clock = MutableClock(LATER)
    source = BrokenPhaseSource(phases=[AppPhase.BACKGROUND, AppPhase.ACTIVE])

    async def scenario() -> ReconciliationService:
        engine = _engine_for(sessions, sensor, clock)
        async with ReconciliationService(engine, source, clock=clock) as service:
            await _settle(service)
            assert service.monitor is not None
            assert service.monitor.status is MonitorStatus.UNAVAILABLE
        return service

    with caplog.at_level(logging.WARNING):
        service = asyncio.run(scenario())

    assert "Lifecycle notifications stopped" in caplog.text
    assert "Lifecycle event consumer crashed" not in caplog.text
    assert service.last_run is not None
    assert sensor.count_calls == [(T0, LATER)]
    assert source.closed
    assert sensor.closed


def test_unreadable_initial_phase_does_not_block_startup_run() -> None:
    sessions = FakeSessions(timestamps={ALICE: T0})
    sensor = FakeMotionSensor(counts=[5])
    clock = MutableClock(LATER)
    source = BrokenPhaseSource(phase_readable=False)

    async def scenario() -> None:
        engine = _engine_for(sessions, sensor, clock)
        service = ReconciliationService(engine, source, clock=clock)
        async with service:
            await _settle(service)
            assert service.last_run is not None
            assert service.last_run.outcome is RunOutcome.BELOW_THRESHOLD

    asyncio.run(scenario())

    assert sensor.count_calls == [(T0, LATER)]
    assert source.closed
    assert sensor.closed
