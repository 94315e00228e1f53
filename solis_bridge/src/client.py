"""
Signed HTTPS client for the SolisCloud platform API.

Serializes the request body once, signs exactly those bytes (see
:mod:`solis_bridge.src.signer`), and POSTs them with a bounded timeout.
The client never retries: a failed call surfaces as a typed error and the
poll scheduler simply waits for the next interval, which keeps the request
rate within the upstream API's limits.

Operations:
- fetch_telemetry(device_id): raw ``stationDetailList`` response.
- list_stations(): station records visible to the API key.
- list_inverters(station_id): inverter records of one station.

CHANGELOG:
- 2026-10-18: Add station/inverter listing for device-id discovery
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import json
import logging
from typing import Any

import httpx

from solis_bridge.src.errors import HttpStatusError, RejectedResponseError, TransportError
from solis_bridge.src.signer import signed_headers

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://www.soliscloud.com:13333"

DETAIL_PATH = "/v1/api/stationDetailList"
STATION_LIST_PATH = "/v1/api/userStationList"
INVERTER_LIST_PATH = "/v1/api/inverterList"

DEFAULT_TIMEOUT_S: float = 10.0
"""Per-request timeout in seconds."""

_PAGE_SIZE = 20


class SolisClient:
    """Async client for the SolisCloud platform API.

    Args:
        base_url: API base URL. Must start with ``https://``.
        api_key: API key id.
        api_secret: API secret used for request signing.
        timeout_s: Per-request timeout in seconds.

    Raises:
        ValueError: If *base_url* is not HTTPS or a credential is empty.

    Usage::

        client = SolisClient(
            base_url="https://www.soliscloud.com:13333",
            api_key="1300386381676",
            api_secret="secret",
        )
        response = await client.fetch_telemetry("1308675217948611111")
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        api_secret: str,
        timeout_s: float = DEFAULT_TIMEOUT_S,
    ) -> None:
        if not base_url.lower().startswith("https://"):
            raise ValueError(f"SolisCloud base URL must use HTTPS (got: '{base_url}').")
        if not api_key or not api_secret:
            raise ValueError("API key and API secret must not be empty")
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._api_secret = api_secret
        self._timeout_s = timeout_s

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def fetch_telemetry(self, device_id: str) -> dict[str, Any]:
        """Fetch the raw telemetry response for one device.

        The response is returned as parsed JSON without interpreting any
        semantic field; validation is the normalizer's job.

        Raises:
            TransportError: On timeout or network failure.
            HttpStatusError: On a non-2xx status.
            RejectedResponseError: If the body is not a JSON object.
        """
        return await self._post(DETAIL_PATH, {"deviceId": device_id})

    async def list_stations(self) -> list[dict[str, Any]]:
        """Return the station records visible to this API key."""
        response = await self._post(STATION_LIST_PATH, {"pageNo": 1, "pageSize": _PAGE_SIZE})
        if response.get("success") is not True:
            raise RejectedResponseError(f"Station list failed: code={response.get('code')}")
        return _page_records(response)

    async def list_inverters(self, station_id: str | int) -> list[dict[str, Any]]:
        """Return the inverter records of *station_id*.

        This endpoint reports success either as ``success: true`` or as
        ``code: "0"``.
        """
        response = await self._post(
            INVERTER_LIST_PATH,
            {"pageNo": 1, "pageSize": _PAGE_SIZE, "stationId": station_id},
        )
        if response.get("success") is not True and str(response.get("code")) != "0":
            raise RejectedResponseError(
                f"Inverter list failed for station {station_id}: code={response.get('code')}"
            )
        return _page_records(response)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _post(self, path: str, payload: dict[str, Any]) -> dict[str, Any]:
        """POST a signed JSON body to *path* and return the decoded object."""
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = signed_headers(self._api_key, self._api_secret, body, path)
        url = f"{self._base_url}{path}"

        try:
            async with httpx.AsyncClient(verify=True, timeout=self._timeout_s) as client:
                response = await client.post(url, content=body, headers=headers)
        except httpx.TimeoutException as exc:
            raise TransportError(f"Timeout after {self._timeout_s}s calling {path}") from exc
        except httpx.TransportError as exc:
            raise TransportError(f"Network error calling {path}: {exc}") from exc

        if not 200 <= response.status_code < 300:
            raise HttpStatusError(response.status_code, response.reason_phrase)

        try:
            data = response.json()
        except ValueError as exc:
            raise RejectedResponseError(f"Response from {path} is not valid JSON") from exc

        if not isinstance(data, dict):
            raise RejectedResponseError(
                f"Response from {path} is {type(data).__name__}, expected object"
            )
        logger.debug("POST %s -> HTTP %d", path, response.status_code)
        return data


def _page_records(response: dict[str, Any]) -> list[dict[str, Any]]:
    """Extract ``data.page.records`` from a paged list response."""
    data = response.get("data")
    page = data.get("page") if isinstance(data, dict) else None
    records = page.get("records") if isinstance(page, dict) else None
    if not isinstance(records, list):
        return []
    return [r for r in records if isinstance(r, dict)]
