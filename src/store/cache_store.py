"""Durable per-origin snapshot cache.

This module persists one full snapshot per origin key in SQLite.
The database handle is an explicit object created once at bootstrap
and passed into every cache operation; reads fail closed and writes
raise ``MetalensStoreError`` for the caller to treat as non-fatal.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import aiosqlite

from core.errors import MetalensStoreError
from core.logging_config import get_logger
from core.types import Snapshot
from store.snapshot_payload import snapshot_from_record, snapshot_to_record

_LOGGER = get_logger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS snapshots (
    origin_key TEXT PRIMARY KEY,
    attributes TEXT NOT NULL,
    sets TEXT NOT NULL,
    link_types TEXT NOT NULL,
    timestamp TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS captured_contexts (
    origin_key TEXT PRIMARY KEY,
    context TEXT NOT NULL,
    captured_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%fZ', 'now'))
);
"""


class CacheHandle:
    """Lazily opened SQLite connection shared by all cache operations.

    Concurrent callers of ``connection`` await the same pending open, so
    the database is opened at most once per handle.
    """

    def __init__(self, database_path: Path) -> None:
        self._database_path = database_path
        self._opening: asyncio.Task[aiosqlite.Connection] | None = None

    @property
    def database_path(self) -> Path:
        return self._database_path

    async def connection(self) -> aiosqlite.Connection:
        """Return the open connection, opening it on first use.

        Returns:
            Shared aiosqlite connection.

        Raises:
            MetalensStoreError: If the database cannot be opened.
        """
        if self._opening is None:
            self._opening = asyncio.ensure_future(self._open())
        opening = self._opening
        try:
            return await opening
        except MetalensStoreError:
            if self._opening is opening:
                self._opening = None
            raise

    async def close(self) -> None:
        """Close the connection if it was opened."""
        opening = self._opening
        self._opening = None
        if opening is None:
            return
        try:
            connection = await opening
        except MetalensStoreError:
            return
        await connection.close()

    async def _open(self) -> aiosqlite.Connection:
        try:
            self._database_path.parent.mkdir(parents=True, exist_ok=True)
            connection = await aiosqlite.connect(self._database_path)
        except (OSError, aiosqlite.Error) as error:
            raise MetalensStoreError(
                f"Failed to open metadata cache at {self._database_path}: {error}. "
                "Check METALENS_DATA_ROOT points to a writable directory."
            ) from error
        try:
            connection.row_factory = aiosqlite.Row
            await connection.executescript(_SCHEMA_SQL)
            await connection.commit()
        except aiosqlite.Error as error:
            await connection.close()
            raise MetalensStoreError(
                f"Failed to initialize metadata cache schema at {self._database_path}: "
                f"{error}. Delete the cache file and retry."
            ) from error
        _LOGGER.debug("cache_opened", database_path=str(self._database_path))
        return connection


async def load_snapshot(handle: CacheHandle, origin_key: str) -> Snapshot | None:
    """Read the cached snapshot for an origin.

    Any store failure is logged and reported as a cache miss.

    Args:
        handle: Open-once cache handle.
        origin_key: Normalized origin key.

    Returns:
        Cached snapshot, or None on miss or failure.
    """
    try:
        connection = await handle.connection()
        async with connection.execute(
            "SELECT origin_key, attributes, sets, link_types, timestamp "
            "FROM snapshots WHERE origin_key = ?",
            (origin_key,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return snapshot_from_record(dict(row))
    except (MetalensStoreError, aiosqlite.Error, ValueError, KeyError) as error:
        _LOGGER.warning("cache_read_failed", origin_key=origin_key, error=str(error))
        return None


async def save_snapshot(handle: CacheHandle, snapshot: Snapshot) -> None:
    """Replace the cached snapshot for the snapshot's origin.

    Args:
        handle: Open-once cache handle.
        snapshot: Snapshot to persist wholesale.

    Raises:
        MetalensStoreError: If the store is unavailable or the write fails.
    """
    record = snapshot_to_record(snapshot)
    connection = await handle.connection()
    try:
        await connection.execute(
            "INSERT INTO snapshots (origin_key, attributes, sets, link_types, timestamp) "
            "VALUES (:origin_key, :attributes, :sets, :link_types, :timestamp) "
            "ON CONFLICT(origin_key) DO UPDATE SET "
            "attributes = excluded.attributes, sets = excluded.sets, "
            "link_types = excluded.link_types, timestamp = excluded.timestamp",
            record,
        )
        await connection.commit()
    except aiosqlite.Error as error:
        raise MetalensStoreError(
            f"Failed to persist snapshot for {snapshot.origin_key}: {error}. "
            "The snapshot remains usable for this session."
        ) from error
    _LOGGER.info(
        "snapshot_persisted",
        origin_key=snapshot.origin_key,
        attribute_count=len(snapshot.attributes),
        set_count=len(snapshot.sets),
        link_type_count=len(snapshot.link_types),
    )


async def save_captured_context(handle: CacheHandle, origin_key: str, context: object) -> None:
    """Store the last retrieved context payload for an origin.

    Raises:
        MetalensStoreError: If the store is unavailable or the write fails.
    """
    connection = await handle.connection()
    try:
        await connection.execute(
            "INSERT INTO captured_contexts (origin_key, context) VALUES (?, ?) "
            "ON CONFLICT(origin_key) DO UPDATE SET context = excluded.context, "
            "captured_at = strftime('%Y-%m-%dT%H:%M:%fZ', 'now')",
            (origin_key, json.dumps(context)),
        )
        await connection.commit()
    except aiosqlite.Error as error:
        raise MetalensStoreError(
            f"Failed to save captured context for {origin_key}: {error}."
        ) from error


async def load_captured_context(handle: CacheHandle, origin_key: str) -> object | None:
    """Return the last captured context for an origin, or None."""
    try:
        connection = await handle.connection()
        async with connection.execute(
            "SELECT context FROM captured_contexts WHERE origin_key = ?",
            (origin_key,),
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        return json.loads(row["context"])
    except (MetalensStoreError, aiosqlite.Error, ValueError) as error:
        _LOGGER.warning("captured_context_read_failed", origin_key=origin_key, error=str(error))
        return None
