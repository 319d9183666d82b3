"""
Persistent per-guild settings for the bot.

Public API:
- init(host) / shutdown(): attach to and detach from a running bot
- get(guild, key, default): read one setting
- set(guild, key, value): write one setting
- remove(guild, key): unset one setting, returning its previous value
- clear(guild): drop every setting of a guild

``guild`` is a guild object, a guild id, or ``"global"``/``None`` for the
bot-wide defaults.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from guildstore.configuration.app_configuration import SettingsStoreConfig, app_config
from guildstore.database.db_connection import ConnectionManager
from guildstore.database.db_schema import SchemaManager, validate_key
from guildstore.settings.row_format import SettingsMap, encode_value
from guildstore.settings.scope import resolve_scope
from guildstore.settings.settings_cache import SettingsCache
from guildstore.settings.value_store import ValueStore
from guildstore.sync.host import SettingsHost
from guildstore.sync.lifecycle import SyncLifecycle
from guildstore.sync.sync_engine import SettingsSyncEngine
from guildstore.util.logger import get_logger

logger = get_logger("settings_provider")


class GuildSettingsProvider:
    """
    Settings provider backed by a dynamic-column SQLite table.

    Lifecycle:
        1. ``await init(host)`` once the bot's guilds are loaded
        2. use get/set/remove/clear
        3. ``await shutdown()`` before the bot closes
    """

    def __init__(
        self,
        config: Optional[SettingsStoreConfig] = None,
        connection: Optional[ConnectionManager] = None,
    ) -> None:
        """
        Args:
            config: Store configuration; defaults to ``app_config.settings_store``.
            connection: Connection manager to share. A connection the provider
                opens itself is closed again on shutdown.
        """
        self.config = config or app_config.settings_store
        self._db = connection or ConnectionManager()
        self._opened_connection = False

        self.schema = SchemaManager(self._db, self.config.table_name)
        self.store = ValueStore(self._db, self.schema)
        self.cache: Optional[SettingsCache] = (
            SettingsCache(self.config.read_cache_ttl_seconds) if self.config.read_cache_enabled else None
        )

        self.host: Optional[SettingsHost] = None
        self.engine: Optional[SettingsSyncEngine] = None
        self.lifecycle = SyncLifecycle()

    @property
    def initialized(self) -> bool:
        return self.host is not None

    # ========== Lifecycle ==========

    async def open(self) -> None:
        """Open the database if needed, create the table and seed the column cache."""
        if not self._db.is_open:
            await self._db.open(self.config.database_path)
            self._opened_connection = True
        await self.schema.ensure_table()
        await self.schema.load_columns()

    async def init(self, host: SettingsHost) -> None:
        """
        Load every stored scope into the host and start listening to it.

        Raises:
            RuntimeError: If the provider is already initialized.
            SettingsStoreError: If the store cannot be prepared or read. The
                provider is left closed and unbound.
        """
        if self.host is not None:
            raise RuntimeError("GuildSettingsProvider is already initialized; call shutdown() first")

        engine = SettingsSyncEngine(self, host, self.config.enabled_value)
        try:
            await self.open()
            await engine.play_forward()
            self.lifecycle.bind(host, engine.listeners())
        except Exception:
            logger.critical("[SETTINGS PROVIDER] Initialization failed, detaching from host")
            self.lifecycle.unbind()
            await self._close_connection()
            raise

        self.host = host
        self.engine = engine
        logger.info("[SETTINGS PROVIDER] Initialized with %d columns", len(self.schema.columns))

    async def shutdown(self) -> None:
        """Unbind listeners, drop cached reads and close an owned connection."""
        self.lifecycle.unbind()
        if self.cache is not None:
            self.cache.clear()
        self.host = None
        self.engine = None
        await self._close_connection()
        logger.info("[SETTINGS PROVIDER] Shutdown complete")

    # ========== Core API ==========

    async def all(self) -> Dict[str, SettingsMap]:
        """Every stored scope's settings, keyed by scope."""
        return await self.store.all()

    async def get_settings(self, guild: Any) -> SettingsMap:
        """Return the flat settings map of one scope (empty if nothing is stored)."""
        scope = resolve_scope(guild)
        if self.cache is None:
            return await self.store.get(scope)

        cached = self.cache.get(scope)
        if cached is not None:
            return cached

        generation = self.cache.generation(scope)
        settings = await self.store.get(scope)
        self.cache.set(scope, settings, generation)
        return settings

    async def get(self, guild: Any, key: str, default: Any = None) -> Any:
        """Return a setting's stored value, or ``default`` when it is unset."""
        settings = await self.get_settings(guild)
        return settings.get(key, default)

    async def set(self, guild: Any, key: str, value: Any) -> Any:
        """
        Store a setting and return ``value``.

        Booleans are stored as the enabled/disabled markers and other values
        as text, so reads return strings.

        Each key is a column and SQLite column names ignore ASCII case, so a key
        that differs only in case from an existing one (``Ping`` after
        ``ping``) is rejected with ``InvalidKey``.

        Raises:
            InvalidScope: If ``guild`` is not a valid scope.
            InvalidKey: If ``key`` cannot be a column.
            StorageUnavailable: On backend failure.
        """
        scope = resolve_scope(guild)
        try:
            await self.store.upsert(scope, key, encode_value(value, self.config.enabled_value))
        finally:
            self._invalidate(scope)
        return value

    async def remove(self, guild: Any, key: str) -> Optional[str]:
        """Unset a setting and return its previous value (None if it was unset)."""
        scope = resolve_scope(guild)
        validate_key(key)

        previous = (await self.get_settings(scope)).get(key)
        if previous is None:
            return None

        try:
            await self.store.upsert(scope, key, None)
        finally:
            self._invalidate(scope)
        return previous

    async def clear(self, guild: Any) -> None:
        """Delete every setting stored for a scope."""
        scope = resolve_scope(guild)
        try:
            removed = await self.store.delete_tenant(scope)
        finally:
            self._invalidate(scope)
        logger.info("[SETTINGS PROVIDER] Cleared settings for %s (%d row(s))", scope, removed)

    # ========== Private Methods ==========

    def _invalidate(self, scope: str) -> None:
        if self.cache is not None:
            self.cache.invalidate(scope)

    async def _close_connection(self) -> None:
        if self._opened_connection:
            await self._db.close()
            self._opened_connection = False
