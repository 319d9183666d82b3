"""Conversion between stored settings rows and flat settings maps."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from guildstore.database.db_schema import FIXED_COLUMNS

ENABLED_VALUE = "1"
DISABLED_VALUE = "0"

SettingsMap = Dict[str, str]


def format_row(row: Optional[Mapping[str, Any]]) -> SettingsMap:
    """
    Strip a stored row down to its settings.

    The id and timestamp columns are dropped and NULL cells are left out, so
    a row whose setting columns are all NULL gives an empty map. ``None``
    (no row) also gives an empty map.
    """
    if row is None:
        return {}
    return {
        key: row[key]
        for key in row.keys()
        if key not in FIXED_COLUMNS and row[key] is not None
    }


def encode_value(value: Any, enabled_value: str = ENABLED_VALUE) -> Optional[str]:
    """Encode a setting for its TEXT column; booleans become enabled/disabled markers."""
    if value is None:
        return None
    if isinstance(value, bool):
        return enabled_value if value else DISABLED_VALUE
    return str(value)


def is_enabled(stored: Any, enabled_value: str = ENABLED_VALUE) -> bool:
    """Compare a stored flag against the enabled marker by value."""
    return str(stored) == enabled_value
