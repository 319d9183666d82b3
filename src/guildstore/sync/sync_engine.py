"""
Synchronization between persisted settings and the bot's live state.

At startup every stored scope is played forward into the host. Afterwards
the engine reacts to host events: prefix and status changes are written
through to the store, and newly visible guilds, commands and groups get the
stored settings that concern them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

from guildstore.database.errors import SettingsStoreError
from guildstore.settings.row_format import ENABLED_VALUE, SettingsMap, is_enabled
from guildstore.settings.scope import is_global, resolve_scope
from guildstore.sync.host import (
    EVENT_COMMAND_REGISTER,
    EVENT_COMMAND_STATUS_CHANGE,
    EVENT_GROUP_REGISTER,
    EVENT_GROUP_STATUS_CHANGE,
    EVENT_GUILD_JOIN,
    EVENT_PREFIX_CHANGE,
    PREFIX_KEY,
    HostCommand,
    HostGroup,
    SettingsHost,
    command_key,
    group_key,
)
from guildstore.util.logger import get_logger

if TYPE_CHECKING:
    from guildstore.settings.provider import GuildSettingsProvider

logger = get_logger("sync_engine")


class SettingsSyncEngine:
    """Applies stored settings to a host and persists host-side changes."""

    def __init__(
        self,
        provider: "GuildSettingsProvider",
        host: SettingsHost,
        enabled_value: str = ENABLED_VALUE,
    ) -> None:
        self._provider = provider
        self._host = host
        self._enabled_value = enabled_value

    def listeners(self) -> Dict[str, Callable[..., Any]]:
        """Event name -> handler coroutine, for the lifecycle controller."""
        return {
            EVENT_PREFIX_CHANGE: self.on_command_prefix_change,
            EVENT_COMMAND_STATUS_CHANGE: self.on_command_status_change,
            EVENT_GROUP_STATUS_CHANGE: self.on_group_status_change,
            EVENT_GUILD_JOIN: self.on_guild_join,
            EVENT_COMMAND_REGISTER: self.on_command_register,
            EVENT_GROUP_REGISTER: self.on_group_register,
        }

    # ========== Startup ==========

    async def play_forward(self) -> int:
        """
        Apply every stored scope to the host.

        Guilds the host has not loaded are skipped. Errors propagate so that
        initialization aborts instead of leaving the host half configured.

        Returns:
            Number of scopes applied.
        """
        all_settings = await self._provider.all()
        applied = sum(1 for scope, settings in all_settings.items() if self.setup_guild(scope, settings))
        logger.info(
            "[SYNC ENGINE] Applied settings for %d of %d stored scopes",
            applied, len(all_settings)
        )
        return applied

    # ========== Applying settings ==========

    def setup_guild(self, scope: str, settings: SettingsMap) -> bool:
        """
        Apply one scope's settings to the host.

        The prefix is applied when present, then every registered command and
        group picks up its flag if the scope stores one. Keys that are absent
        leave the live state alone.

        Returns:
            False if the scope is a guild the host does not know, else True.
        """
        if not isinstance(scope, str):
            raise TypeError('The guild must be a guild ID or "global".')

        guild_id = self._guild_id(scope)
        if guild_id is not None and not self._host.has_guild(guild_id):
            logger.debug("[SYNC ENGINE] Guild %s not loaded, skipping", guild_id)
            return False

        if PREFIX_KEY in settings:
            self._host.set_prefix_override(guild_id, settings[PREFIX_KEY])

        for command in list(self._host.commands):
            self.setup_guild_command(guild_id, command, settings)
        for group in list(self._host.groups):
            self.setup_guild_group(guild_id, group, settings)
        return True

    def setup_guild_command(self, guild_id: Optional[str], command: HostCommand, settings: SettingsMap) -> None:
        key = command_key(command)
        if key not in settings:
            return
        self._host.set_command_enabled(guild_id, command, is_enabled(settings[key], self._enabled_value))

    def setup_guild_group(self, guild_id: Optional[str], group: HostGroup, settings: SettingsMap) -> None:
        key = group_key(group)
        if key not in settings:
            return
        self._host.set_group_enabled(guild_id, group, is_enabled(settings[key], self._enabled_value))

    # ========== Event handlers ==========

    async def on_command_prefix_change(self, guild: Any, prefix: Optional[str]) -> None:
        await self._write(guild, PREFIX_KEY, prefix)

    async def on_command_status_change(self, guild: Any, command: HostCommand, enabled: bool) -> None:
        await self._write(guild, command_key(command), bool(enabled))

    async def on_group_status_change(self, guild: Any, group: HostGroup, enabled: bool) -> None:
        await self._write(guild, group_key(group), bool(enabled))

    async def on_guild_join(self, guild: Any) -> None:
        """Apply a newly visible guild's stored settings, if it has any."""
        scope = resolve_scope(guild)
        try:
            settings = await self._provider.get_settings(scope)
        except SettingsStoreError:
            logger.exception("[SYNC ENGINE] Failed to load settings for joined guild %s", scope)
            raise

        if not settings:
            logger.debug("[SYNC ENGINE] No stored settings for joined guild %s", scope)
            return
        if self.setup_guild(scope, settings):
            logger.info("[SYNC ENGINE] Applied stored settings to joined guild %s", scope)

    async def on_command_register(self, command: HostCommand) -> None:
        """Apply a new command's stored flag in the global scope and every known guild."""
        for guild_id, settings in await self._known_scopes():
            self.setup_guild_command(guild_id, command, settings)
        logger.debug("[SYNC ENGINE] Synced registered command %s", command.name)

    async def on_group_register(self, group: HostGroup) -> None:
        """Apply a new group's stored flag in the global scope and every known guild."""
        for guild_id, settings in await self._known_scopes():
            self.setup_guild_group(guild_id, group, settings)
        logger.debug("[SYNC ENGINE] Synced registered group %s", group.id)

    # ========== Private Methods ==========

    async def _write(self, guild: Any, key: str, value: Any) -> None:
        try:
            await self._provider.set(guild, key, value)
        except SettingsStoreError:
            logger.exception("[SYNC ENGINE] Failed to persist %s for %r", key, guild)
            raise

    async def _known_scopes(self) -> list[tuple[Optional[str], SettingsMap]]:
        try:
            all_settings = await self._provider.all()
        except SettingsStoreError:
            logger.exception("[SYNC ENGINE] Catch-up scan failed")
            raise

        known = []
        for scope, settings in all_settings.items():
            guild_id = self._guild_id(scope)
            if guild_id is not None and not self._host.has_guild(guild_id):
                continue
            known.append((guild_id, settings))
        return known

    @staticmethod
    def _guild_id(scope: str) -> Optional[str]:
        return None if is_global(scope) else scope
