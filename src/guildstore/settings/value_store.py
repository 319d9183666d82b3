"""
Row-level access to the settings table.

Rows are keyed by the stored guild id; the global scope is written under the
sentinel id and read back as ``"global"``. Each write touches one column.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from guildstore.database.db_connection import ConnectionManager
from guildstore.database.db_schema import ID_COLUMN, SchemaManager, quote_identifier
from guildstore.settings.row_format import SettingsMap, format_row
from guildstore.settings.scope import from_storage_id, to_storage_id
from guildstore.util.logger import get_logger

logger = get_logger("value_store")


class ValueStore:
    """CRUD over settings rows for resolved scopes."""

    def __init__(self, db: ConnectionManager, schema: SchemaManager) -> None:
        self._db = db
        self._schema = schema

    @property
    def _table(self) -> str:
        return quote_identifier(self._schema.table_name)

    async def all(self) -> Dict[str, SettingsMap]:
        """Return every row as scope -> settings map."""
        async with self._db.read() as conn:
            async with conn.execute(f"SELECT * FROM {self._table}") as cursor:
                rows = await cursor.fetchall()

        return {from_storage_id(row[ID_COLUMN]): format_row(row) for row in rows}

    async def get(self, scope: str) -> SettingsMap:
        """Return one scope's settings, or an empty map when it has no row."""
        return format_row(await self.get_raw(scope))

    async def get_raw(self, scope: str) -> Optional[Dict[str, Any]]:
        """Return the stored row for a scope including id and timestamps, or None."""
        async with self._db.read() as conn:
            async with conn.execute(
                f"SELECT * FROM {self._table} WHERE {ID_COLUMN} = ?",
                (to_storage_id(scope),),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            return None
        return {key: row[key] for key in row.keys()}

    async def upsert(self, scope: str, key: str, value: Optional[str]) -> None:
        """
        Write one column of a scope's row, inserting the row if needed.

        The column is created first when the key is new. The insert-or-update
        is a single statement run inside the serialised write transaction.

        Raises:
            InvalidKey: If the key cannot be a column.
            DuplicateRowRace: If the backend still reports a primary key clash.
            StorageUnavailable: On any other backend failure.
        """
        await self._schema.ensure_column(key)

        column = quote_identifier(key)
        async with self._db.transaction(column=key) as conn:
            await conn.execute(
                f"""
                INSERT INTO {self._table} ({ID_COLUMN}, {column}) VALUES (?, ?)
                ON CONFLICT({ID_COLUMN}) DO UPDATE SET {column} = excluded.{column}
                """,
                (to_storage_id(scope), value),
            )
        logger.debug("[VALUE STORE] Wrote %s for %s", key, scope)

    async def delete_tenant(self, scope: str) -> int:
        """Delete a scope's whole row and return the number of rows removed."""
        async with self._db.transaction() as conn:
            cursor = await conn.execute(
                f"DELETE FROM {self._table} WHERE {ID_COLUMN} = ?",
                (to_storage_id(scope),),
            )
            removed = cursor.rowcount
            await cursor.close()

        logger.debug("[VALUE STORE] Deleted %d row(s) for %s", removed, scope)
        return removed
