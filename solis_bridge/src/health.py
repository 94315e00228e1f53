"""
Health file writer for the bridge daemon.

Writes a JSON health file at a configurable path with four fields:
- last_poll_ts: ISO timestamp of the most recent poll attempt.
- last_success_ts: ISO timestamp of the most recent published snapshot.
- consecutive_failures: Poll cycles failed since the last success.
- accessory_count: Number of live accessories after reconciliation.

The file is rewritten on every state change, providing a simple liveness
signal that a container HEALTHCHECK or monitoring can inspect.

CHANGELOG:
- 2026-10-18: Initial creation
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path


class HealthWriter:
    """Writes bridge health status to a JSON file.

    Args:
        path: Filesystem path for the health JSON file. Accepts str or Path.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._last_poll_ts: str | None = None
        self._last_success_ts: str | None = None
        self._consecutive_failures: int = 0
        self._accessory_count: int = 0

    def record_poll(self, *, success: bool) -> None:
        """Record a poll attempt and write health file."""
        now = datetime.now(tz=UTC).isoformat()
        self._last_poll_ts = now
        if success:
            self._last_success_ts = now
            self._consecutive_failures = 0
        else:
            self._consecutive_failures += 1
        self._write()

    def set_accessory_count(self, count: int) -> None:
        """Update the live accessory count and write health file."""
        self._accessory_count = count
        self._write()

    def _write(self) -> None:
        data = {
            "last_poll_ts": self._last_poll_ts,
            "last_success_ts": self._last_success_ts,
            "consecutive_failures": self._consecutive_failures,
            "accessory_count": self._accessory_count,
        }
        self.path.write_text(json.dumps(data))
