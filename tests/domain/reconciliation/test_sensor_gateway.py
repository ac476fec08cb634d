from __future__ import annotations

import asyncio
import logging
from datetime import timedelta

import pytest

from stepsync.domain.errors import PlatformError, QueryError, SensorUnavailable
from stepsync.domain.reconciliation import ExclusiveResource, SensorGateway
from stepsync.domain.types import ReconciliationWindow
from tests.helpers.fakes import T0, FakeMotionSensor

WINDOW = ReconciliationWindow(start=T0, end=T0 + timedelta(hours=1))


def test_count_events_passes_window_bounds() -> None:
    sensor = FakeMotionSensor(counts=[42])
    gateway = SensorGateway(sensor)

    count = asyncio.run(gateway.count_events(WINDOW))

    assert count == 42
    assert sensor.count_calls == [(WINDOW.start, WINDOW.end)]


def test_empty_window_returns_zero_without_query() -> None:
    sensor = FakeMotionSensor(counts=[42])
    gateway = SensorGateway(sensor)

    count = asyncio.run(gateway.count_events(ReconciliationWindow.empty_at(T0)))

    assert count == 0
    assert sensor.count_calls == []


def test_missing_sensor_is_unavailable() -> None:
    gateway = SensorGateway()

    assert asyncio.run(gateway.is_available()) is False
    with pytest.raises(SensorUnavailable):
        asyncio.run(gateway.count_events(WINDOW))


def test_availability_failure_becomes_platform_error() -> None:
    gateway = SensorGateway(FakeMotionSensor(available=OSError("bus error")))

    with pytest.raises(PlatformError):
        asyncio.run(gateway.is_available())


@pytest.mark.parametrize(
    "failure",
    [TimeoutError("slow"), RuntimeError("driver crashed")],
)
def test_adapter_exceptions_become_query_errors(failure: BaseException) -> None:
    gateway = SensorGateway(FakeMotionSensor(counts=[failure]))

    with pytest.raises(QueryError) as excinfo:
        asyncio.run(gateway.count_events(WINDOW))

    assert excinfo.value.__cause__ is failure


def test_domain_errors_pass_through_unchanged() -> None:
    denied = SensorUnavailable("permission denied")
    gateway = SensorGateway(FakeMotionSensor(counts=[denied]))

    with pytest.raises(SensorUnavailable) as excinfo:
        asyncio.run(gateway.count_events(WINDOW))

    assert excinfo.value is denied


def test_negative_count_is_rejected() -> None:
    gateway = SensorGateway(FakeMotionSensor(counts=[-3]))

    with pytest.raises(QueryError, match="invalid count"):
        asyncio.run(gateway.count_events(WINDOW))


def test_attach_releases_previous_handle() -> None:
    first = FakeMotionSensor()
    second = FakeMotionSensor()
    gateway = SensorGateway(first)

    asyncio.run(gateway.attach(second))

    assert first.closed
    assert not second.closed
    assert gateway.sensor is second


def test_close_releases_handle_once() -> None:
    sensor = FakeMotionSensor()
    gateway = SensorGateway(sensor)

    asyncio.run(gateway.close())

    assert sensor.closed
    assert gateway.sensor is None
    asyncio.run(gateway.close())


def test_release_failure_is_logged_and_replacement_proceeds(
    caplog: pytest.LogCaptureFixture,
) -> None:
    broken = FakeMotionSensor(close_error=RuntimeError("already gone"))
    replacement = FakeMotionSensor()
    slot: ExclusiveResource[FakeMotionSensor] = ExclusiveResource("motion sensor", broken)

    with caplog.at_level(logging.ERROR, logger="stepsync.domain.reconciliation.resources"):
        asyncio.run(slot.replace(replacement))

    assert slot.current is replacement
    assert broken.closed
    assert "Failed to release motion sensor handle" in caplog.text


def test_replace_with_same_handle_keeps_it_open() -> None:
    sensor = FakeMotionSensor()
    slot: ExclusiveResource[FakeMotionSensor] = ExclusiveResource("motion sensor", sensor)

    asyncio.run(slot.replace(sensor))

    assert not sensor.closed
    assert slot.current is sensor
