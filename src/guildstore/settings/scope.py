"""Tenant scope resolution and the on-disk sentinel for the global scope."""

from __future__ import annotations

from typing import Any

from guildstore.database.errors import InvalidScope

GLOBAL_SCOPE = "global"
# Primary key stored for the global scope
SENTINEL_ID = "0"


def resolve_scope(guild: Any) -> str:
    """
    Turn a guild reference into a scope string.

    Accepts ``None`` or ``"global"`` (the global scope), anything with an
    ``id`` attribute (a guild object), an ``int`` or a non-empty ``str`` id.

    Raises:
        InvalidScope: For unsupported values, empty ids, or an id equal to
            the global sentinel.
    """
    if guild is None:
        return GLOBAL_SCOPE
    if isinstance(guild, bool):
        raise InvalidScope(f"Cannot resolve a scope from {guild!r}")

    if isinstance(guild, str):
        value = guild.strip()
        if value == GLOBAL_SCOPE:
            return GLOBAL_SCOPE
    elif isinstance(guild, int):
        value = str(guild)
    elif getattr(guild, "id", None) is not None:
        value = str(guild.id).strip()
    else:
        raise InvalidScope(f"Cannot resolve a scope from {type(guild).__name__}: {guild!r}")

    if not value:
        raise InvalidScope("Guild ids must not be empty")
    if value == SENTINEL_ID:
        raise InvalidScope(f"Guild id {SENTINEL_ID!r} is reserved for the global scope")
    return value


def to_storage_id(scope: str) -> str:
    """Map a resolved scope onto the primary key stored on disk."""
    return SENTINEL_ID if scope == GLOBAL_SCOPE else scope


def from_storage_id(stored: Any) -> str:
    """Map a stored primary key back onto its scope."""
    value = str(stored)
    return GLOBAL_SCOPE if value == SENTINEL_ID else value


def is_global(scope: str) -> bool:
    return scope == GLOBAL_SCOPE
