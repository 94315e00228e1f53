"""
Home-automation host interface and a SQLite-backed local host.

The bridge core talks to its host only through :class:`AccessoryHost`:
create a shell, register new shells, push changes of existing shells, and
unregister retired ones. Restored shells flow the other way, through the
platform's ``configure_accessory`` hook, before startup begins.

:class:`LocalAccessoryHost` is the host used by the standalone daemon. It
persists shells (including their last published values) as JSON rows in an
async SQLite database, so accessory identities and the last known readings
survive restarts.

Operations:
- restore(hook): call *hook* once per cached shell.
- register_accessories / update_accessories: upsert shells.
- unregister_accessories: delete shells.
- count(): number of cached shells.

CHANGELOG:
- 2026-10-18: Initial creation

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Protocol

import aiosqlite

from solis_bridge.src.accessory import Accessory

logger = logging.getLogger(__name__)


class AccessoryHost(Protocol):
    """What the bridge core needs from its home-automation host."""

    def create_accessory(self, display_name: str, uuid: str) -> Accessory:
        """Return a new, unregistered shell."""
        ...

    async def register_accessories(self, accessories: Sequence[Accessory]) -> None:
        """Register newly created shells."""
        ...

    async def update_accessories(self, accessories: Sequence[Accessory]) -> None:
        """Persist structural or value changes of registered shells."""
        ...

    async def unregister_accessories(self, accessories: Sequence[Accessory]) -> None:
        """Remove shells from the host."""
        ...


_CREATE_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS accessories (
    uuid TEXT PRIMARY KEY,
    payload TEXT NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""

_UPSERT_SQL = """\
INSERT INTO accessories (uuid, payload) VALUES (?, ?)
ON CONFLICT(uuid) DO UPDATE SET payload = excluded.payload, updated_at = datetime('now');
"""

_SELECT_ALL_SQL = "SELECT uuid, payload FROM accessories ORDER BY uuid ASC;"

_COUNT_SQL = "SELECT COUNT(*) FROM accessories;"


class LocalAccessoryHost:
    """Accessory host persisting shells in an async SQLite database.

    Args:
        path: Filesystem path for the SQLite database file.
              Accepts ``str`` or ``pathlib.Path``.

    Usage::

        async with LocalAccessoryHost("/data/accessories.db") as host:
            await host.restore(platform.configure_accessory)
            await platform.did_finish_launching()
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._db: aiosqlite.Connection | None = None

    async def open(self) -> None:
        """Open the SQLite connection and initialize the schema."""
        self._db = await aiosqlite.connect(str(self._path))
        await self._db.execute("PRAGMA journal_mode=WAL;")
        await self._db.execute(_CREATE_TABLE_SQL)
        await self._db.commit()

    async def close(self) -> None:
        if self._db is not None:
            await self._db.close()
            self._db = None

    async def __aenter__(self) -> LocalAccessoryHost:
        await self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # AccessoryHost
    # ------------------------------------------------------------------

    def create_accessory(self, display_name: str, uuid: str) -> Accessory:
        return Accessory.create(display_name, uuid)

    async def register_accessories(self, accessories: Sequence[Accessory]) -> None:
        await self._upsert(accessories)
        for accessory in accessories:
            logger.info("Registered accessory %s (%s)", accessory.display_name, accessory.uuid)

    async def update_accessories(self, accessories: Sequence[Accessory]) -> None:
        await self._upsert(accessories)

    async def unregister_accessories(self, accessories: Sequence[Accessory]) -> None:
        assert self._db is not None, "Host not opened. Call open() or use async with."
        if not accessories:
            return
        uuids = [a.uuid for a in accessories]
        placeholders = ",".join("?" for _ in uuids)
        sql = f"DELETE FROM accessories WHERE uuid IN ({placeholders});"  # noqa: S608
        await self._db.execute(sql, uuids)
        await self._db.commit()
        for accessory in accessories:
            logger.info("Unregistered accessory %s (%s)", accessory.display_name, accessory.uuid)

    # ------------------------------------------------------------------
    # Restore
    # ------------------------------------------------------------------

    async def restore(self, hook: Callable[[Accessory], None]) -> int:
        """Hand every cached shell to *hook* and return how many were restored.

        Rows that no longer parse are logged and skipped.
        """
        assert self._db is not None, "Host not opened. Call open() or use async with."
        cursor = await self._db.execute(_SELECT_ALL_SQL)
        rows = await cursor.fetchall()
        restored = 0
        for uuid, payload in rows:
            try:
                accessory = Accessory.model_validate_json(payload)
            except ValueError:
                logger.warning("Skipping unreadable cached accessory %s", uuid, exc_info=True)
                continue
            hook(accessory)
            restored += 1
        return restored

    async def count(self) -> int:
        assert self._db is not None, "Host not opened. Call open() or use async with."
        cursor = await self._db.execute(_COUNT_SQL)
        row = await cursor.fetchone()
        return row[0]

    async def _upsert(self, accessories: Sequence[Accessory]) -> None:
        assert self._db is not None, "Host not opened. Call open() or use async with."
        if not accessories:
            return
        await self._db.executemany(
            _UPSERT_SQL,
            [(a.uuid, a.model_dump_json()) for a in accessories],
        )
        await self._db.commit()
