"""Pydantic models describing the motion service payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class MotionServiceBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class StatusResponse(MotionServiceBaseModel):
    available: bool
    reason: str | None = None


class StepCountResponse(MotionServiceBaseModel):
    steps: int = Field(ge=0)


class ErrorResponse(MotionServiceBaseModel):
    error: str
    message: str | None = None
