"""SQLite key/value client for persisted board state."""

import asyncio
import json
import logging
import threading
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import aiosqlite

from taskboard.core.config import settings
from taskboard.core.errors import StateStoreError


logger = logging.getLogger(__name__)


_SCHEMA = """
CREATE TABLE IF NOT EXISTS board_state (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


def _cache_key(db_path: str | None) -> tuple[int, int, str]:
    return (threading.get_ident(), id(asyncio.get_running_loop()), str(get_db_path(db_path)))


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)
    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path = get_db_path(db_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn
        logger.info("Created new SQLite connection", extra={"db_path": str(path)})
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    cache_key = _cache_key(db_path)
    if cache_key not in _db_connections:
        return

    try:
        async with _db_lock:
            conn = _db_connections.pop(cache_key, None)
            if conn is not None:
                await conn.close()
                logger.info("Closed SQLite connection", extra={"db_path": cache_key[2]})
    except Exception as e:
        logger.warning("Error closing SQLite connection", extra={"error": str(e), "db_path": cache_key[2]})


async def init_db(*, db_path: str | None = None) -> None:
    """Create the state table if it does not exist."""
    try:
        conn = await get_connection(db_path=db_path)
        await conn.execute(_SCHEMA)
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("init_db_failed", extra={"error": str(e)})
        msg = f"Failed to initialize state database: {e}"
        raise StateStoreError(msg) from e


async def get_state(*, key: str, db_path: str | None = None) -> dict[str, Any] | None:
    """Fetch the JSON document stored under ``key``.

    Returns:
        The decoded document, or None if nothing is stored under ``key``

    Raises:
        StateStoreError: If the database cannot be read or the stored value is not a JSON object
    """
    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute("SELECT value FROM board_state WHERE key = ?", (key,))
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("get_state_failed", extra={"key": key, "error": str(e)})
        msg = f"Failed to read state {key}: {e}"
        raise StateStoreError(msg) from e

    if row is None:
        return None
    try:
        value = json.loads(row[0])
    except json.JSONDecodeError as e:
        msg = f"Stored state {key} is not valid JSON: {e}"
        raise StateStoreError(msg) from e
    if not isinstance(value, dict):
        msg = f"Stored state {key} is not a JSON object"
        raise StateStoreError(msg)

    logger.debug("Retrieved state", extra={"key": key})
    return value


async def put_state(*, key: str, value: dict[str, Any], db_path: str | None = None) -> None:
    """Insert or replace the JSON document stored under ``key``."""
    try:
        conn = await get_connection(db_path=db_path)
        await conn.execute(
            "INSERT INTO board_state (key, value, updated_at) VALUES (?, ?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, json.dumps(value), datetime.now(UTC).isoformat()),
        )
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("put_state_failed", extra={"key": key, "error": str(e)})
        msg = f"Failed to write state {key}: {e}"
        raise StateStoreError(msg) from e

    logger.debug("Stored state", extra={"key": key})

