"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict

VERSION = "2.0.0"


class Settings(BaseSettings):
    """All settings are read from environment variables (case-insensitive)."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ── Grafana Cloud (Influx line-protocol push endpoint) ────────────────────
    # Leaving any of these empty makes every relay attempt fail with a
    # configuration error (HTTP 500) instead of contacting the upstream.
    grafana_url: str = ""
    grafana_user: str = ""
    grafana_api_key: str = ""
    relay_timeout: float = 10.0

    # ── Connectivity probe ────────────────────────────────────────────────────
    probe_measurement: str = "mpu_connection_test"
    probe_source: str = "mpu_relay"

    # ── HTTP listener ─────────────────────────────────────────────────────────
    host: str = "0.0.0.0"
    port: int = 3000
    # root_path for serving behind a reverse proxy at a sub-path
    root_path: str = ""
    cors_allow_headers: str = "Content-Type, Authorization"

    log_level: str = "INFO"
