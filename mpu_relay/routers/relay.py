"""Tablet-facing relay endpoints.

The tablet app talks to a single URL, so every path is accepted:

* ``OPTIONS`` – CORS preflight, answered with 204 and no body.
* ``GET``     – status page for checking the relay from a browser.
* ``POST``    – ``{"test": true}`` writes a connectivity probe line;
  any other body is an activity record that is encoded to line protocol
  and relayed to Grafana Cloud.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from mpu_relay.clients.grafana import GrafanaRelayClient
from mpu_relay.config import Settings
from mpu_relay.deps import get_relay_client, get_settings
from mpu_relay.errors import ValidationError
from mpu_relay.lineproto import encode, probe_line
from mpu_relay.models import RelayOutcome, RelayResponse, StatusResponse, TelemetryRecord

logger = logging.getLogger(__name__)

router = APIRouter(tags=["relay"])

# ── Helpers ────────────────────────────────────────────────────────────────────


async def _read_json_object(request: Request) -> dict[str, Any]:
    """Parse the request body, raising ValidationError unless it is a JSON object."""
    raw = await request.body()
    try:
        data = json.loads(raw)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def _to_response(
    outcome: RelayOutcome, message: str, lines: int | None = None
) -> JSONResponse:
    if outcome.success:
        body = RelayResponse(success=True, message=message, lines=lines)
        return JSONResponse(body.model_dump(exclude_none=True))
    body = RelayResponse(success=False, error=outcome.error)
    return JSONResponse(body.model_dump(exclude_none=True), status_code=500)


# ── Routes ─────────────────────────────────────────────────────────────────────


@router.options("/{path:path}", status_code=204, include_in_schema=False)
async def preflight(path: str) -> Response:
    """Answer a CORS preflight; the headers are added by the CORS middleware."""
    return Response(status_code=204)


@router.get(
    "/{path:path}",
    response_model=StatusResponse,
    summary="Relay status",
)
async def status(
    path: str,
    relay: GrafanaRelayClient = Depends(get_relay_client),
) -> StatusResponse:
    return StatusResponse(relay_configured=relay.is_configured)


@router.post(
    "/{path:path}",
    response_model=RelayResponse,
    summary="Relay tablet activity to Grafana",
    description=(
        "Accepts an activity record (or a ``{\"test\": true}`` probe), "
        "encodes it as Influx line protocol and forwards it to Grafana Cloud."
    ),
)
async def ingest(
    path: str,
    request: Request,
    relay: GrafanaRelayClient = Depends(get_relay_client),
    settings: Settings = Depends(get_settings),
) -> JSONResponse:
    data = await _read_json_object(request)

    # ── Connectivity probe ───────────────────────────────────────────────────
    if data.get("test"):
        line = probe_line(settings.probe_measurement, settings.probe_source)
        outcome = await relay.relay(line)
        return _to_response(outcome, "Connected to Grafana Cloud!")

    # ── Activity record ──────────────────────────────────────────────────────
    record = TelemetryRecord.model_validate(data)
    lines = encode(record)
    outcome = await relay.relay("\n".join(lines))
    if outcome.success:
        logger.info(
            "Activity %s from MPU %s relayed (%d line(s))",
            record.activity_code,
            record.mpu,
            len(lines),
        )
    return _to_response(outcome, "Data sent to Grafana", lines=len(lines))
