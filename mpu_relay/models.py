"""Pydantic request / response models for the MPU relay."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from mpu_relay.config import VERSION

# ── Tablet telemetry ──────────────────────────────────────────────────────────


class TelemetryRecord(BaseModel):
    """
    Activity record posted by the tablet app.

    The client sends loosely typed JSON (codes as strings or numbers, GPS as
    strings, empty strings for unset fields), so every value is kept as
    received and coerced by the line encoder.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    mpu: Any = None
    site: Any = None
    operator: Any = None
    shift: Any = None
    date: Any = None
    slot: Any = Field(None, description="Time slot, e.g. 's_6_30'")
    activity_code: Any = Field(None, alias="activityCode")
    activity_name: Any = Field(None, alias="activityName")
    activity_type: Any = Field(None, alias="activityType")
    device: Any = None
    device_id: Any = Field(None, alias="deviceId")
    docket: Any = None
    lat: Any = None
    lon: Any = None
    timestamp: Any = Field(None, description="Nanosecond epoch timestamp")
    test: Any = Field(None, description="Truthy for a connectivity probe")


# ── Upstream relay ────────────────────────────────────────────────────────────


class RelayOutcome(BaseModel):
    """Result of a single write to the ingestion endpoint."""

    success: bool
    error: str | None = None


# ── Responses ─────────────────────────────────────────────────────────────────


class RelayResponse(BaseModel):
    success: bool
    message: str | None = None
    error: str | None = None
    lines: int | None = Field(None, description="Number of lines relayed")


class StatusResponse(BaseModel):
    success: bool = True
    message: str = "MPU relay is running!"
    version: str = VERSION
    usage: str = "POST JSON activity data to relay it to Grafana"
    relay_configured: bool = False
