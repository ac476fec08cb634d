"""Capability wrapper around the physical motion sensor."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from stepsync.domain.errors import PlatformError, QueryError, SensorUnavailable

from .resources import ExclusiveResource

if TYPE_CHECKING:
    from stepsync.domain.ports.sensor import MotionSensor
    from stepsync.domain.types import ReconciliationWindow

log = getLogger(__name__)


class SensorGateway:
    """Owns the sensor handle and normalizes its failures.

    ``is_available`` raises ``PlatformError`` when the check itself fails.
    ``count_events`` raises ``SensorUnavailable`` or ``QueryError``; any other
    adapter exception is reported as ``QueryError``.
    """

    def __init__(self, sensor: MotionSensor | None = None) -> None:
        self._slot: ExclusiveResource[MotionSensor] = ExclusiveResource("motion sensor", sensor)

    @property
    def sensor(self) -> MotionSensor | None:
        return self._slot.current

    async def attach(self, sensor: MotionSensor) -> None:
        """Take exclusive ownership of ``sensor``, releasing any previous handle."""

        await self._slot.replace(sensor)

    async def close(self) -> None:
        await self._slot.release()

    async def is_available(self) -> bool:
        sensor = self.sensor
        if sensor is None:
            return False
        try:
            return bool(await sensor.is_available())
        except Exception as exc:
            raise PlatformError(f"Sensor availability check failed: {exc!r}") from exc

    async def count_events(self, window: ReconciliationWindow) -> int:
        if window.is_empty:
            return 0
        sensor = self.sensor
        if sensor is None:
            raise SensorUnavailable("No motion sensor attached")
        try:
            count = await sensor.count_events(window.start, window.end)
        except (SensorUnavailable, QueryError):
            raise
        except Exception as exc:
            raise QueryError(f"Sensor count query failed: {exc!r}") from exc
        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise QueryError(f"Sensor returned an invalid count: {count!r}")
        log.debug("Sensor counted %s events in [%s, %s)", count, window.start, window.end)
        return count
