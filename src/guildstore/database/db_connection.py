"""
Database connection management: one long-lived aiosqlite connection.

SQLite performs best with a single connection kept open for the bot's
lifetime rather than a connection per operation. WAL mode lets one writer
and any number of readers proceed together, and writes are serialised here
with ``_write_sem`` so async tasks queue up instead of fighting SQLite's
busy timeout.

Every ``sqlite3.Error`` that escapes a read or a transaction is translated
into the store's own error kinds (see :mod:`guildstore.database.errors`).

Usage
-----
    manager = ConnectionManager()
    await manager.open(path)

    async with manager.read() as conn:
        async with conn.execute("SELECT ...") as cursor:
            rows = await cursor.fetchall()

    async with manager.transaction() as conn:
        await conn.execute("INSERT ...")
        # commits on clean exit, rolls back on exception

    await manager.close()
"""

from __future__ import annotations

import asyncio
import sqlite3
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from guildstore.database.errors import StorageUnavailable, translate_sqlite_error
from guildstore.util.logger import get_logger

logger = get_logger("database_connection")

# ── Pragmas applied once when the connection is opened ──────────────────────
_PRAGMAS = [
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",    # safe with WAL; faster than FULL
    "PRAGMA temp_store = MEMORY",
    "PRAGMA busy_timeout = 5000",
]


class ConnectionManager:
    """
    Wrapper around a single aiosqlite connection.

    * Reads  - ``async with read()``; WAL allows concurrent reads.
    * Writes - ``async with transaction()``; serialised by ``_write_sem``.
    """

    def __init__(self) -> None:
        self._conn: aiosqlite.Connection | None = None
        self._write_sem = asyncio.Semaphore(1)
        self._path: Path | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    @property
    def path(self) -> Path | None:
        return self._path

    async def open(self, path: Path) -> None:
        """
        Open the database file and apply the pragmas.

        Args:
            path: Path to the SQLite database file. Parent directories are created.

        Raises:
            StorageUnavailable: If the file cannot be opened.
        """
        if self._conn is not None:
            logger.warning("[DB CONNECTION] open() called but connection already exists, ignoring")
            return

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(path)
        except (OSError, sqlite3.Error) as exc:
            logger.error("[DB CONNECTION] Could not open %s: %s", path, exc)
            raise StorageUnavailable(f"cannot open database {path}: {exc}") from exc

        conn.row_factory = aiosqlite.Row
        try:
            for pragma in _PRAGMAS:
                await conn.execute(pragma)
            await conn.commit()
        except sqlite3.Error as exc:
            await conn.close()
            raise translate_sqlite_error(exc) from exc

        self._conn = conn
        self._path = path
        logger.info("[DB CONNECTION] Opened connection to %s", path)

    async def close(self) -> None:
        """Checkpoint the WAL and close the connection. No-op when closed."""
        if self._conn is None:
            return

        try:
            await self._conn.execute("PRAGMA wal_checkpoint(TRUNCATE)")
            await self._conn.commit()
        except sqlite3.Error:
            logger.exception("[DB CONNECTION] WAL checkpoint failed during close")
        finally:
            await self._conn.close()
            self._conn = None
            logger.info("[DB CONNECTION] Connection closed")

    # ------------------------------------------------------------------
    # Connection access
    # ------------------------------------------------------------------

    @property
    def connection(self) -> aiosqlite.Connection:
        """
        The raw aiosqlite connection.

        Raises:
            StorageUnavailable: If the connection has not been opened.
        """
        if self._conn is None:
            raise StorageUnavailable(
                "ConnectionManager: connection is not open. "
                "Call await manager.open(path) at startup."
            )
        return self._conn

    @asynccontextmanager
    async def read(self) -> AsyncIterator[aiosqlite.Connection]:
        """Yield the shared connection for reads; no semaphore is taken."""
        conn = self.connection
        try:
            yield conn
        except sqlite3.Error as exc:
            raise translate_sqlite_error(exc) from exc

    @asynccontextmanager
    async def transaction(self, column: str | None = None) -> AsyncIterator[aiosqlite.Connection]:
        """
        Serialised write transaction.

        Commits on clean exit and rolls back when the body raises.

        Args:
            column: Column being written or created, reported on a
                ``SchemaConflict`` so callers know which key collided.
        """
        conn = self.connection

        async with self._write_sem:
            try:
                yield conn
                await conn.commit()
            except sqlite3.Error as exc:
                await self._rollback(conn)
                raise translate_sqlite_error(exc, column) from exc
            except BaseException:
                await self._rollback(conn)
                raise

    @staticmethod
    async def _rollback(conn: aiosqlite.Connection) -> None:
        try:
            await conn.rollback()
        except sqlite3.Error:
            logger.exception("[DB CONNECTION] Rollback failed")
