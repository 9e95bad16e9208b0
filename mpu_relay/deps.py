"""FastAPI dependency providers.

Settings are read once and injected via ``Depends``; the relay client is
built from them per request.  Tests override these functions via
``app.dependency_overrides``.
"""

from functools import lru_cache

from fastapi import Depends

from mpu_relay.clients.grafana import GrafanaRelayClient
from mpu_relay.config import Settings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


def get_relay_client(settings: Settings = Depends(get_settings)) -> GrafanaRelayClient:
    return GrafanaRelayClient(
        url=settings.grafana_url,
        user=settings.grafana_user,
        api_key=settings.grafana_api_key,
        timeout=settings.relay_timeout,
    )
