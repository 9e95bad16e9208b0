"""Grafana Cloud Influx push client.

Posts newline-joined line-protocol payloads to the hosted Influx write
endpoint (``.../api/v1/push/influx/write``) using HTTP Basic auth with the
Grafana instance user id and an API key.  Every write is a single attempt.
"""

from __future__ import annotations

import logging

import httpx

from mpu_relay.errors import ConfigurationError, UpstreamError
from mpu_relay.models import RelayOutcome

logger = logging.getLogger(__name__)

# Upstream bodies can be whole HTML error pages; only the head is useful.
_MAX_ERROR_BODY = 200


class GrafanaRelayClient:
    """Async client for the Grafana Cloud Influx line-protocol endpoint."""

    def __init__(
        self,
        url: str,
        user: str,
        api_key: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url
        self._auth = (user, api_key)
        self._timeout = timeout
        self._transport = transport

    @property
    def is_configured(self) -> bool:
        """True when the URL, user and API key are all set."""
        return bool(self._url and all(self._auth))

    async def write(self, payload: str) -> None:
        """POST *payload* to the ingestion endpoint.

        Raises:
            ConfigurationError: if the URL or credentials are unset; no
                request is made.
            UpstreamError: on transport failure or a status other than
                200 / 204.
        """
        if not self.is_configured:
            raise ConfigurationError("Grafana credentials not configured")

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self._url,
                    auth=self._auth,
                    headers={"Content-Type": "text/plain"},
                    content=payload.encode(),
                    timeout=self._timeout,
                )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise UpstreamError(
                f"Upstream unreachable: {str(exc) or exc.__class__.__name__}"
            ) from exc

        if resp.status_code not in (200, 204):
            raise UpstreamError(
                f"Upstream error {resp.status_code}: {resp.text[:_MAX_ERROR_BODY]}"
            )
        logger.info(
            "Relayed %d line(s) to %s (HTTP %s)",
            payload.count("\n") + 1,
            resp.url.host,
            resp.status_code,
        )

    async def relay(self, payload: str) -> RelayOutcome:
        """Write *payload* and report the result instead of raising.

        A missing configuration still raises :class:`ConfigurationError`.
        """
        try:
            await self.write(payload)
        except UpstreamError as exc:
            logger.warning("Relay to Grafana failed: %s", exc)
            return RelayOutcome(success=False, error=str(exc))
        return RelayOutcome(success=True)
