"""Error taxonomy shared by the encoder, the relay client and the routes.

Each error carries the HTTP status the front door answers with; the message
is passed through verbatim as the ``error`` field of the JSON envelope.
"""

from __future__ import annotations


class RelayError(Exception):
    """Base class for every error surfaced to the tablet client."""

    status_code: int = 500


class ValidationError(RelayError):
    """Raised when a request body is malformed or missing required data."""

    status_code = 400


class ConfigurationError(RelayError):
    """Raised when the upstream URL or credentials are not configured."""


class UpstreamError(RelayError):
    """Raised when the ingestion endpoint rejects a write or is unreachable."""
