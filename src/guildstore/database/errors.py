"""
Error kinds raised by the settings store.

All errors derive from :class:`SettingsStoreError` so callers can catch the
whole family at once. Backend exceptions are chained as ``__cause__``.
"""

from __future__ import annotations

import sqlite3


class SettingsStoreError(Exception):
    """Base class for every settings store failure."""


class StorageUnavailable(SettingsStoreError):
    """The backend could not be reached or rejected the operation."""


class DuplicateRowRace(StorageUnavailable):
    """Two first-writers for the same tenant collided on the primary key."""


class SchemaConflict(SettingsStoreError):
    """A concurrent writer created the same column first."""

    def __init__(self, column: str, message: str = "") -> None:
        super().__init__(message or f"column {column!r} already exists")
        self.column = column


class InvalidKey(SettingsStoreError, ValueError):
    """The key cannot be used as a column identifier."""

    def __init__(self, key: object, reason: str) -> None:
        super().__init__(f"invalid setting key {key!r}: {reason}")
        self.key = key
        self.reason = reason


class InvalidScope(SettingsStoreError, ValueError):
    """The value cannot be resolved to a tenant scope."""


def translate_sqlite_error(exc: sqlite3.Error, column: str | None = None) -> SettingsStoreError:
    """Map a raw sqlite3 error onto the store's error kinds."""
    message = str(exc)
    if isinstance(exc, sqlite3.OperationalError) and "duplicate column name" in message.lower():
        return SchemaConflict(column or message.rsplit(":", 1)[-1].strip(), message)
    if isinstance(exc, sqlite3.IntegrityError):
        return DuplicateRowRace(message)
    return StorageUnavailable(message)
