"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from models.records import Reading


class ReadingOut(BaseModel):
    """A buffered reading as served to dashboard clients."""

    ts: int = Field(..., description="Milliseconds since the Unix epoch.")
    temp: Optional[float] = None
    hum: Optional[float] = None
    raw: Dict[str, Any] = Field(default_factory=dict, description="Payload as received.")

    @classmethod
    def from_reading(cls, reading: Reading) -> "ReadingOut":
        return cls.model_validate(reading.to_payload())


class HealthStatus(BaseModel):
    """Service liveness plus ingestion counters."""

    status: str = "ok"
    broker_connected: bool
    viewers: int = Field(..., ge=0)
    buffered: int = Field(..., ge=0)
    capacity: int = Field(..., ge=1)
    received: int = Field(..., ge=0)
    accepted: int = Field(..., ge=0)
    rejected: int = Field(..., ge=0)
