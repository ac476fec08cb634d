"""Motion sensor service configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import optional_float, require_env_vars
from .http_resilience import RateLimit, ResilienceConfig

SENSOR_TIMEOUT_SECONDS = 5.0


@dataclass(frozen=True, slots=True)
class SensorServiceConfig:
    """Holds the location of the companion motion service."""

    base_url: str
    resilience: ResilienceConfig


def get_sensor_service_config(*, resilience: ResilienceConfig | None = None) -> SensorServiceConfig:
    values = require_env_vars(("STEPSYNC_SENSOR_URL",))
    base_url = values["STEPSYNC_SENSOR_URL"].strip()
    return SensorServiceConfig(
        base_url=base_url,
        resilience=resilience
        or ResilienceConfig(
            name="motion-service",
            base_url=base_url,
            timeout_seconds=optional_float(
                "STEPSYNC_SENSOR_TIMEOUT_SECONDS", SENSOR_TIMEOUT_SECONDS, minimum=0.1
            ),
            ratelimit=RateLimit(max_calls=4, per_seconds=1.0),
            default_headers={"Accept": "application/json"},
        ),
    )
