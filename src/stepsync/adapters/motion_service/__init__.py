"""Public interface for the motion service adapter."""

from __future__ import annotations

from .client import MotionServiceSensor
from .schema import ErrorResponse, StatusResponse, StepCountResponse

__all__ = [
    "ErrorResponse",
    "MotionServiceSensor",
    "StatusResponse",
    "StepCountResponse",
]
