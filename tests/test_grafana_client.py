"""Unit tests for GrafanaRelayClient against an in-process mock transport."""

from __future__ import annotations

import asyncio
import base64

import httpx
import pytest

from mpu_relay.clients.grafana import GrafanaRelayClient
from mpu_relay.errors import ConfigurationError, UpstreamError
from tests.conftest import (
    GRAFANA_API_KEY,
    GRAFANA_URL,
    GRAFANA_USER,
    make_grafana_client,
)

PAYLOAD = "mpu_activity,mpu=MPU1 value=3i 1718001000000000000"


# ── Request shape ─────────────────────────────────────────────────────────────


def test_relay_posts_plain_text_with_basic_auth() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(204)

    outcome = asyncio.run(make_grafana_client(handler).relay(PAYLOAD))

    assert outcome.success is True
    assert outcome.error is None
    assert len(seen) == 1
    request = seen[0]
    assert request.method == "POST"
    assert str(request.url) == GRAFANA_URL
    assert request.headers["Content-Type"] == "text/plain"
    expected = base64.b64encode(f"{GRAFANA_USER}:{GRAFANA_API_KEY}".encode()).decode()
    assert request.headers["Authorization"] == f"Basic {expected}"
    assert request.content.decode() == PAYLOAD


# ── Status classification ─────────────────────────────────────────────────────


@pytest.mark.parametrize("status", [200, 204])
def test_relay_success_statuses(status: int) -> None:
    client = make_grafana_client(lambda request: httpx.Response(status))
    assert asyncio.run(client.relay(PAYLOAD)).success is True


@pytest.mark.parametrize("status", [201, 400, 401, 404, 500, 503])
def test_relay_failure_statuses_report_code(status: int) -> None:
    client = make_grafana_client(lambda request: httpx.Response(status, text="nope"))
    outcome = asyncio.run(client.relay(PAYLOAD))
    assert outcome.success is False
    assert str(status) in (outcome.error or "")
    assert "nope" in (outcome.error or "")


def test_relay_truncates_error_body() -> None:
    body = "x" * 1000
    client = make_grafana_client(lambda request: httpx.Response(503, text=body))
    outcome = asyncio.run(client.relay(PAYLOAD))
    assert outcome.error == f"Upstream error 503: {'x' * 200}"


def test_relay_transport_failure_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = asyncio.run(make_grafana_client(handler).relay(PAYLOAD))
    assert outcome.success is False
    assert "connection refused" in (outcome.error or "")


def test_relay_timeout_is_reported() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    outcome = asyncio.run(make_grafana_client(handler).relay(PAYLOAD))
    assert outcome.success is False
    assert "timed out" in (outcome.error or "")


def test_write_raises_upstream_error() -> None:
    client = make_grafana_client(lambda request: httpx.Response(401, text="bad key"))
    with pytest.raises(UpstreamError, match="401"):
        asyncio.run(client.write(PAYLOAD))


# ── Configuration ─────────────────────────────────────────────────────────────


@pytest.mark.parametrize(
    "url,user,api_key",
    [("", GRAFANA_USER, GRAFANA_API_KEY), (GRAFANA_URL, "", GRAFANA_API_KEY), (GRAFANA_URL, GRAFANA_USER, "")],
)
def test_relay_unconfigured_fails_before_any_request(url: str, user: str, api_key: str) -> None:
    calls: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(204)

    client = make_grafana_client(handler, url=url, user=user, api_key=api_key)
    assert client.is_configured is False
    with pytest.raises(ConfigurationError):
        asyncio.run(client.relay(PAYLOAD))
    assert calls == []


def test_is_configured_when_all_set() -> None:
    client = GrafanaRelayClient(url=GRAFANA_URL, user=GRAFANA_USER, api_key=GRAFANA_API_KEY)
    assert client.is_configured is True
