"""
Bridge daemon main loop for the SolisCloud telemetry bridge.

Lifecycle, in host order:
1. **Restore**: the host hands every cached accessory shell to
   :meth:`SolisPlatform.configure_accessory`.
2. **Launch**: :meth:`SolisPlatform.did_finish_launching` reconciles the
   registry against the restored shells, once.
3. **Poll loop**: runs one fetch-normalize-publish cycle immediately, then
   one every ``poll_interval_s`` seconds.

A failed cycle (transport, HTTP status, rejected response) is logged and
skipped; previously published values stay visible until the next successful
cycle. There is no retry faster than the next tick, which keeps the API key
within the upstream rate limit. Graceful shutdown on SIGTERM/SIGINT sets a
shared asyncio.Event; the loop finishes its current cycle and exits.

Structured JSON logging is used for all events. A HealthWriter instance
tracks poll outcomes and writes a JSON health file after each state change.

CHANGELOG:
- 2026-10-19: Level from settings; fixed-period poll loop
- 2026-10-18: Persist published values through the host after each change
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import asyncio
import contextlib
import hashlib
import json
import logging
import signal
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from solis_bridge.src.client import SolisClient
from solis_bridge.src.errors import ConfigurationError, TransportError, UpstreamError
from solis_bridge.src.health import HealthWriter
from solis_bridge.src.normalizer import normalize
from solis_bridge.src.publisher import SensorPublisher
from solis_bridge.src.reconciler import AccessoryReconciler

if TYPE_CHECKING:
    from solis_bridge.src.accessory import Accessory
    from solis_bridge.src.config import BridgeSettings
    from solis_bridge.src.host import AccessoryHost

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging for the bridge daemon.

    Sets up the root logger with a JSON-formatted handler writing to stderr.
    Startup logs at INFO; the configured ``LOG_LEVEL`` is applied once the
    settings have been validated.
    """

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def _masked_token(value: str | None) -> str:
    """Return a short non-reversible token fingerprint for diagnostics."""
    if not value:
        return "empty"
    digest = hashlib.sha256(value.encode("utf-8")).hexdigest()[:10]
    return f"len={len(value)} sha256={digest}"


def log_config_summary(settings: object) -> None:
    """Log a config summary at startup, masking the API secret.

    Args:
        settings: A BridgeSettings instance (or any object with the same attrs).
    """
    logger.info(
        "Bridge starting with config: "
        "device_id=%s, base_url=%s, poll_interval_s=%s, request_timeout_s=%s, "
        "accessory_cache_path=%s, health_path=%s, log_level=%s, "
        "api_key=%s, api_secret_masked=%s",
        settings.solis_device_id,  # type: ignore[attr-defined]
        settings.solis_base_url,  # type: ignore[attr-defined]
        settings.poll_interval_s,  # type: ignore[attr-defined]
        settings.request_timeout_s,  # type: ignore[attr-defined]
        settings.accessory_cache_path,  # type: ignore[attr-defined]
        settings.health_path,  # type: ignore[attr-defined]
        settings.log_level,  # type: ignore[attr-defined]
        settings.solis_api_key,  # type: ignore[attr-defined]
        _masked_token(settings.solis_api_secret),  # type: ignore[attr-defined]
    )


# ---------------------------------------------------------------------------
# Single-iteration function (easily testable)
# ---------------------------------------------------------------------------


async def _poll_once(
    *,
    client: SolisClient,
    publisher: SensorPublisher,
    host: AccessoryHost,
    accessories: Mapping[str, Accessory],
    device_id: str,
    health: HealthWriter | None,
) -> bool:
    """Execute a single fetch-normalize-publish cycle.

    Catches all exceptions so that the caller's loop is never broken.

    Returns:
        True if a snapshot was published, False if the cycle was skipped.
    """
    success = False
    try:
        response = await client.fetch_telemetry(device_id)
        snapshot = normalize(response)
        changed = publisher.publish(snapshot)
        logger.info("Poll success: device=%s, %d metrics changed", device_id, changed)
        logger.debug("Snapshot: %s", snapshot.model_dump_json())
        success = True
        if changed:
            try:
                await host.update_accessories(list(accessories.values()))
            except Exception:
                logger.warning("Failed to persist published values", exc_info=True)
    except TransportError as exc:
        logger.warning("Transport error, skipping cycle: %s", exc)
    except UpstreamError as exc:
        logger.warning("Upstream error, skipping cycle: %s", exc)
    except Exception:
        logger.error("Poll cycle error", exc_info=True)

    if health is not None:
        try:
            health.record_poll(success=success)
        except Exception:
            logger.warning("Failed to write health file", exc_info=True)
    return success


# ---------------------------------------------------------------------------
# Platform
# ---------------------------------------------------------------------------


class SolisPlatform:
    """Bridge platform wiring the core components to one host.

    Args:
        settings: Loaded BridgeSettings.
        host: Home-automation host collaborator.
        client: SolisCloud client; built from *settings* when omitted.
        health: HealthWriter, or None to skip health writes.
    """

    def __init__(
        self,
        settings: BridgeSettings,
        host: AccessoryHost,
        client: SolisClient | None = None,
        health: HealthWriter | None = None,
    ) -> None:
        self._settings = settings
        self._host = host
        self._client = client or SolisClient(
            base_url=settings.solis_base_url,
            api_key=settings.solis_api_key,
            api_secret=settings.solis_api_secret,
            timeout_s=settings.request_timeout_s,
        )
        self._health = health
        self._reconciler = AccessoryReconciler(host, settings.solis_device_id)
        self._accessories: dict[str, Accessory] = {}
        self._publisher: SensorPublisher | None = None

    @property
    def accessories(self) -> dict[str, Accessory]:
        return self._accessories

    def configure_accessory(self, accessory: Accessory) -> None:
        """Restore hook, called once per cached shell before launch."""
        self._reconciler.configure_accessory(accessory)

    async def did_finish_launching(self) -> dict[str, Accessory]:
        """Startup hook: reconcile accessories once and prepare publishing."""
        logger.info("Platform launched, reconciling accessories")
        self._accessories = await self._reconciler.reconcile()
        self._publisher = SensorPublisher(self._accessories)
        if self._health is not None:
            try:
                self._health.set_accessory_count(len(self._accessories))
            except Exception:
                logger.warning("Failed to write health file", exc_info=True)
        return self._accessories

    async def poll_once(self) -> bool:
        if self._publisher is None:
            await self.did_finish_launching()
        return await _poll_once(
            client=self._client,
            publisher=self._publisher,  # type: ignore[arg-type]
            host=self._host,
            accessories=self._accessories,
            device_id=self._settings.solis_device_id,
            health=self._health,
        )

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """Run the poll loop until shutdown_event is set.

        The first cycle runs immediately. Cycles start every
        ``poll_interval_s`` seconds of wall-clock time, so a slow cycle
        shortens the following wait instead of stretching the period.
        """
        interval = self._settings.poll_interval_s
        loop = asyncio.get_running_loop()
        logger.info("Poll loop started (interval=%ss)", interval)
        while not shutdown_event.is_set():
            started = loop.time()
            await self.poll_once()
            delay = max(0.0, interval - (loop.time() - started))
            # Use wait with timeout so we can check shutdown between sleeps
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(shutdown_event.wait(), timeout=delay)
        logger.info("Poll loop stopped")


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


async def async_main() -> int:
    """Async entrypoint: load config, restore accessories, run the poll loop.

    Returns:
        Process exit code. 1 on a configuration error, in which case no
        polling begins.
    """
    configure_logging()

    from solis_bridge.src.config import load_settings
    from solis_bridge.src.host import LocalAccessoryHost

    try:
        settings = load_settings()
    except ConfigurationError as exc:
        logger.error("Configuration error, not starting: %s", exc)
        return 1
    logging.getLogger().setLevel(settings.log_level)
    log_config_summary(settings)

    shutdown_event = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: _handle_signal(shutdown_event),
        )

    health = HealthWriter(settings.health_path)

    async with LocalAccessoryHost(settings.accessory_cache_path) as host:
        platform = SolisPlatform(settings, host, health=health)
        restored = await host.restore(platform.configure_accessory)
        logger.info("Restored %d cached accessories", restored)
        await platform.did_finish_launching()
        await platform.run(shutdown_event)

    logger.info("Shutdown complete")
    return 0


def _handle_signal(shutdown_event: asyncio.Event) -> None:
    """Handle SIGTERM/SIGINT by setting the shutdown event."""
    logger.info("Received shutdown signal, initiating graceful shutdown")
    shutdown_event.set()


def main() -> None:
    """Synchronous entrypoint for the bridge daemon."""
    sys.exit(asyncio.run(async_main()))


if __name__ == "__main__":
    main()
