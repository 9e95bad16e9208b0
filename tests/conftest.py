"""Shared pytest fixtures and helpers.

The Grafana relay client is replaced by a lightweight mock via FastAPI's
``dependency_overrides`` mechanism so route tests run without network access.
Client-level tests drive a real client over ``httpx.MockTransport``.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from mpu_relay.clients.grafana import GrafanaRelayClient
from mpu_relay.config import Settings
from mpu_relay.deps import get_relay_client, get_settings
from mpu_relay.main import app
from mpu_relay.models import RelayOutcome

# ── Constants ─────────────────────────────────────────────────────────────────

GRAFANA_URL = "https://influx.example.grafana.net/api/v1/push/influx/write"
GRAFANA_USER = "2618255"
GRAFANA_API_KEY = "glc_test_key"

# 2024-06-10T06:30:00Z in nanoseconds
FIXED_TS = 1_718_001_000_000_000_000

# ── Helpers ───────────────────────────────────────────────────────────────────


def make_grafana_client(
    handler: Callable[[httpx.Request], httpx.Response],
    url: str = GRAFANA_URL,
    user: str = GRAFANA_USER,
    api_key: str = GRAFANA_API_KEY,
) -> GrafanaRelayClient:
    """Build a real client whose HTTP traffic goes to *handler*."""
    return GrafanaRelayClient(
        url=url,
        user=user,
        api_key=api_key,
        timeout=5.0,
        transport=httpx.MockTransport(handler),
    )


def relayed_payload(mock: GrafanaRelayClient) -> str:
    """Return the payload passed to the last ``relay`` call."""
    return mock.relay.call_args[0][0]  # type: ignore[attr-defined]


# ── Fixtures ──────────────────────────────────────────────────────────────────


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        grafana_url=GRAFANA_URL,
        grafana_user=GRAFANA_USER,
        grafana_api_key=GRAFANA_API_KEY,
        probe_measurement="mpu_connection_test",
        probe_source="pytest",
    )


@pytest.fixture()
def mock_relay() -> GrafanaRelayClient:
    client: GrafanaRelayClient = MagicMock(spec=GrafanaRelayClient)
    client.is_configured = True  # type: ignore[misc]
    client.relay = AsyncMock(  # type: ignore[method-assign]
        return_value=RelayOutcome(success=True)
    )
    return client


@pytest.fixture()
def test_client(settings: Settings, mock_relay: GrafanaRelayClient) -> TestClient:
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_relay_client] = lambda: mock_relay
    yield TestClient(app)  # type: ignore[misc]
    app.dependency_overrides.clear()
