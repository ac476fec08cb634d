"""HTTP client for a companion motion (pedometer) service."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import ValidationError

from stepsync.adapters.http_resilience import ResilienceConfig, ResilientClient
from stepsync.domain.errors import QueryError, SensorUnavailable

from .schema import ErrorResponse, MotionServiceBaseModel, StatusResponse, StepCountResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from stepsync.domain.ports.sensor import MotionSensor

log = getLogger(__name__)

STATUS_PATH = "/status"
STEPS_PATH = "/steps"
_UNAVAILABLE_STATUSES = frozenset({403, 404})


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat().replace("+00:00", "Z")


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _describe_error(response: httpx.Response) -> str:
    try:
        payload = ErrorResponse.model_validate(response.json())
    except (ValueError, ValidationError):
        return f"HTTP {response.status_code}"
    return f"HTTP {response.status_code}: {payload.message or payload.error}"


@dataclass(slots=True)
class MotionServiceSensor:
    """Motion sensor backed by the device's motion service over HTTP.

    The underlying client is created on first use and kept until ``aclose``; the
    sensor gateway owns that lifetime.
    """

    resilience: ResilienceConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    async def is_available(self) -> bool:
        response = await self._get(STATUS_PATH)
        if response.status_code in _UNAVAILABLE_STATUSES:
            return False
        self._raise_for_status(response)
        status = self._parse(StatusResponse, response)
        if not status.available:
            log.info("Motion service reports sensor unavailable: %s", status.reason or "no reason")
        return status.available

    async def count_events(self, start: datetime, end: datetime) -> int:
        params = httpx.QueryParams(
            {"from": _format_timestamp(start), "to": _format_timestamp(end)}
        )
        response = await self._get(STEPS_PATH, params=params)
        if response.status_code in _UNAVAILABLE_STATUSES:
            raise SensorUnavailable(_describe_error(response))
        self._raise_for_status(response)
        return self._parse(StepCountResponse, response).steps

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def _client_or_create(self) -> ResilientClient:
        if self._client is None:
            self._client = self.client_factory(self.resilience)
        return self._client

    async def _get(
        self,
        path: str,
        *,
        params: httpx.QueryParams | None = None,
    ) -> httpx.Response:
        try:
            return await self._client_or_create().get(path, params=params)
        except httpx.HTTPError as exc:
            raise QueryError(f"Motion service request to {path} failed: {exc!r}") from exc

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return
        raise QueryError(f"Motion service error: {_describe_error(response)}")

    @staticmethod
    def _parse[TModel: MotionServiceBaseModel](
        model: type[TModel], response: httpx.Response
    ) -> TModel:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise QueryError(f"Unexpected motion service payload: {exc}") from exc


if TYPE_CHECKING:
    _sensor_check: MotionSensor = MotionServiceSensor(resilience=ResilienceConfig(name="check"))
