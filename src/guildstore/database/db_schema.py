"""
Schema management for the dynamic settings table.

The settings table starts with three fixed columns (``guild``, ``created_at``,
``updated_at``) and grows one TEXT column per setting key, added the first
time the key is written. Columns are never dropped.

Known column names are kept in memory (the column cache) so writes do not
introspect the schema every time.
"""

from __future__ import annotations

import asyncio
import re
import string
from typing import Dict, List

from guildstore.database.db_connection import ConnectionManager
from guildstore.database.errors import InvalidKey, SchemaConflict
from guildstore.util.logger import get_logger

logger = get_logger("database_schema")

ID_COLUMN = "guild"
CREATED_COLUMN = "created_at"
UPDATED_COLUMN = "updated_at"
FIXED_COLUMNS = (ID_COLUMN, CREATED_COLUMN, UPDATED_COLUMN)

MAX_KEY_LENGTH = 64
# unicode word characters plus separators; columns are always quoted
_KEY_PATTERN = re.compile(r"[\w.:\-]+")
_TABLE_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")
# SQLite compares column names case-insensitively for ASCII letters only
_ASCII_LOWER = str.maketrans(string.ascii_uppercase, string.ascii_lowercase)


def quote_identifier(name: str) -> str:
    """Quote a SQLite identifier."""
    return '"' + name.replace('"', '""') + '"'


def fold_column_name(name: str) -> str:
    return name.translate(_ASCII_LOWER)


def validate_key(key: object) -> str:
    """
    Check that ``key`` can be used as a settings column.

    Raises:
        InvalidKey: If the key is not a non-empty string of at most 64
            characters made of letters, digits, ``_``, ``.``, ``:`` and ``-``
            (unicode letters included), or names a fixed column.
    """
    if not isinstance(key, str):
        raise InvalidKey(key, "keys must be strings")
    if not key:
        raise InvalidKey(key, "keys must not be empty")
    if len(key) > MAX_KEY_LENGTH:
        raise InvalidKey(key, f"keys are limited to {MAX_KEY_LENGTH} characters")
    if not _KEY_PATTERN.fullmatch(key):
        raise InvalidKey(key, "only letters, digits, '_', '.', ':' and '-' are allowed")
    if fold_column_name(key) in FIXED_COLUMNS:
        raise InvalidKey(key, "reserved column name")
    return key


class SchemaManager:
    """Creates the settings table and adds setting columns on demand."""

    def __init__(self, db: ConnectionManager, table_name: str = "settings") -> None:
        if not _TABLE_PATTERN.match(table_name):
            raise ValueError(f"Invalid table name: {table_name!r}")
        self._db = db
        self.table_name = table_name
        self._columns: List[str] = []
        # folded name -> stored name
        self._lookup: Dict[str, str] = {}
        self._column_locks: Dict[str, asyncio.Lock] = {}

    @property
    def columns(self) -> tuple[str, ...]:
        """Snapshot of the column cache."""
        return tuple(self._columns)

    def has_column(self, name: str) -> bool:
        return fold_column_name(name) in self._lookup

    async def ensure_table(self) -> None:
        """Create the settings table and its timestamp trigger if missing."""
        table = quote_identifier(self.table_name)
        trigger = quote_identifier(f"{self.table_name}_touch_updated_at")

        async with self._db.transaction() as conn:
            await conn.execute(f"""
                CREATE TABLE IF NOT EXISTS {table} (
                    {ID_COLUMN} TEXT PRIMARY KEY,
                    {CREATED_COLUMN} TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                    {UPDATED_COLUMN} TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)
            await conn.execute(f"""
                CREATE TRIGGER IF NOT EXISTS {trigger}
                AFTER UPDATE ON {table}
                FOR EACH ROW
                BEGIN
                    UPDATE {table} SET {UPDATED_COLUMN} = CURRENT_TIMESTAMP
                    WHERE {ID_COLUMN} = NEW.{ID_COLUMN};
                END
            """)
        logger.info("[SCHEMA] Settings table %s ready", self.table_name)

    async def load_columns(self) -> List[str]:
        """Read the table's columns from the database and reseed the cache."""
        async with self._db.read() as conn:
            async with conn.execute(f"PRAGMA table_info({quote_identifier(self.table_name)})") as cursor:
                rows = await cursor.fetchall()

        self._columns = [row["name"] for row in rows]
        self._lookup = {fold_column_name(name): name for name in self._columns}
        logger.debug("[SCHEMA] Loaded %d columns for %s", len(self._columns), self.table_name)
        return list(self._columns)

    async def ensure_column(self, key: str) -> bool:
        """
        Make sure a column exists for ``key``.

        Column creation for one key is serialised by a per-key lock, and the
        key only enters the cache once its column exists. A duplicate-column
        error from another writer is absorbed after reloading the columns.

        Returns:
            True if this call created the column, False if it already existed.

        Raises:
            InvalidKey: If the key cannot be a column identifier or differs
                only in case from an existing column.
            SchemaConflict: If the ALTER reported a duplicate column but the
                column is still missing after a reload.
        """
        validate_key(key)
        if self._known(key):
            return False

        name = fold_column_name(key)
        lock = self._column_locks.setdefault(name, asyncio.Lock())
        try:
            async with lock:
                if self._known(key):
                    return False

                try:
                    async with self._db.transaction(column=key) as conn:
                        await conn.execute(
                            f"ALTER TABLE {quote_identifier(self.table_name)} "
                            f"ADD COLUMN {quote_identifier(key)} TEXT"
                        )
                except SchemaConflict:
                    logger.info("[SCHEMA] Column %s was created concurrently, reloading columns", key)
                    await self.load_columns()
                    if not self._known(key):
                        raise
                    return False

                self._columns.append(key)
                self._lookup[name] = key
                logger.info("[SCHEMA] Added column %s to %s", key, self.table_name)
                return True
        finally:
            # later callers see the column in the cache and never reach the lock
            if self._column_locks.get(name) is lock:
                del self._column_locks[name]

    def _known(self, key: str) -> bool:
        existing = self._lookup.get(fold_column_name(key))
        if existing is None:
            return False
        if existing != key:
            raise InvalidKey(key, f"collides with existing column {existing!r}")
        return True
