"""
Error taxonomy for the bridge daemon.

Only ConfigurationError is fatal. Every other error is caught at the level
that owns it (poll cycle or single metric), logged, and operation continues
with the previously published values.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations


class BridgeError(Exception):
    """Base class for all bridge errors."""


class ConfigurationError(BridgeError):
    """Required configuration is missing or invalid. No polling starts."""


class TransportError(BridgeError):
    """Network error or timeout talking to the cloud API."""


class UpstreamError(BridgeError):
    """The cloud API answered, but not with usable data."""


class HttpStatusError(UpstreamError):
    """The cloud API returned a non-2xx HTTP status.

    Args:
        status_code: HTTP status code of the response.
        reason: Reason phrase or short body excerpt for logging.
    """

    def __init__(self, status_code: int, reason: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        super().__init__(f"HTTP {status_code} {reason}".strip())


class RejectedResponseError(UpstreamError):
    """The response body failed validation (success flag, records, shape)."""


class ReconciliationError(BridgeError):
    """A single metric's accessory could not be created or repaired."""
