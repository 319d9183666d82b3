"""
py-cord implementation of the settings host.

Keeps the live state the settings provider synchronizes (bot-wide and
per-guild prefixes, command and group enablement) next to a ``discord.Bot``,
and fires the custom events the provider listens to through
``bot.dispatch``. Cogs act as command groups.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import discord

from guildstore.settings.scope import GLOBAL_SCOPE, resolve_scope
from guildstore.util.logger import get_logger

logger = get_logger("pycord_host")

DEFAULT_PREFIX = "!"


@dataclass(frozen=True)
class CommandGroup:
    """A cog seen as a command group; ``id`` is the lower-cased cog name."""
    id: str
    name: str
    cog: Any = field(default=None, compare=False, repr=False)

    @classmethod
    def from_cog(cls, cog: Any) -> "CommandGroup":
        return cls(id=cog.qualified_name.lower(), name=cog.qualified_name, cog=cog)


class PycordSettingsHost:
    """Settings host backed by a py-cord bot."""

    def __init__(self, bot: discord.Bot, default_prefix: str = DEFAULT_PREFIX) -> None:
        self.bot = bot
        self.global_prefix: Optional[str] = default_prefix
        self._guild_prefixes: Dict[str, Optional[str]] = {}

        self._commands: Dict[str, Any] = {}
        self._groups: Dict[str, CommandGroup] = {}

        self._commands_enabled: Dict[str, bool] = {}
        self._groups_enabled: Dict[str, bool] = {}
        self._guild_commands_enabled: Dict[str, Dict[str, bool]] = {}
        self._guild_groups_enabled: Dict[str, Dict[str, bool]] = {}

    # ========== Event bus ==========

    def add_listener(self, func: Callable[..., Any], name: str) -> None:
        self.bot.add_listener(func, name)

    def remove_listener(self, func: Callable[..., Any], name: str) -> None:
        self.bot.remove_listener(func, name)

    # ========== Registry ==========

    def has_guild(self, guild_id: str) -> bool:
        try:
            return self.bot.get_guild(int(guild_id)) is not None
        except (TypeError, ValueError):
            return False

    @property
    def commands(self) -> List[Any]:
        return list(self._commands.values())

    @property
    def groups(self) -> List[CommandGroup]:
        return list(self._groups.values())

    def register_command(self, command: Any) -> None:
        """Track a command and announce it with ``command_register``."""
        self._commands[command.name] = command
        self.bot.dispatch("command_register", command)
        logger.debug("[PYCORD HOST] Registered command %s", command.name)

    def register_group(self, cog: Any) -> CommandGroup:
        """Track a cog as a group, announce it, then register its commands."""
        group = CommandGroup.from_cog(cog)
        self._groups[group.id] = group
        self.bot.dispatch("group_register", group)
        logger.debug("[PYCORD HOST] Registered group %s", group.id)

        for command in cog.get_commands():
            self.register_command(command)
        return group

    def register_bot_commands(self) -> int:
        """Register every cog and cog-less application command the bot has."""
        for cog in list(self.bot.cogs.values()):
            self.register_group(cog)
        for command in list(self.bot.application_commands):
            if getattr(command, "cog", None) is None:
                self.register_command(command)
        logger.info(
            "[PYCORD HOST] Registered %d commands in %d groups",
            len(self._commands), len(self._groups)
        )
        return len(self._commands)

    # ========== Live state (applied by the sync engine) ==========

    def set_prefix_override(self, guild_id: Optional[str], prefix: Optional[str]) -> None:
        if guild_id is None:
            self.global_prefix = prefix
        else:
            self._guild_prefixes[guild_id] = prefix

    def set_command_enabled(self, guild_id: Optional[str], command: Any, enabled: bool) -> None:
        if guild_id is None:
            self._commands_enabled[command.name] = enabled
        else:
            self._guild_commands_enabled.setdefault(guild_id, {})[command.name] = enabled

    def set_group_enabled(self, guild_id: Optional[str], group: Any, enabled: bool) -> None:
        if guild_id is None:
            self._groups_enabled[group.id] = enabled
        else:
            self._guild_groups_enabled.setdefault(guild_id, {})[group.id] = enabled

    # ========== Queries ==========

    def get_prefix(self, guild: Any = None) -> Optional[str]:
        """The guild's prefix override, falling back to the bot-wide prefix."""
        guild_id = self._guild_id(guild)
        if guild_id is not None and self._guild_prefixes.get(guild_id) is not None:
            return self._guild_prefixes[guild_id]
        return self.global_prefix

    def is_group_enabled(self, guild: Any, group: Any) -> bool:
        return self._lookup(self._guild_groups_enabled, self._groups_enabled, self._guild_id(guild), group.id)

    def is_command_enabled(self, guild: Any, command: Any) -> bool:
        """
        Whether a command may run in a guild.

        A disabled group disables all of its commands. Guild flags win over
        bot-wide flags; anything never configured is enabled.
        """
        group = self._group_of(command)
        if group is not None and not self.is_group_enabled(guild, group):
            return False
        return self._lookup(
            self._guild_commands_enabled, self._commands_enabled, self._guild_id(guild), command.name
        )

    async def command_check(self, ctx: discord.ApplicationContext) -> bool:
        """Bot-wide check rejecting commands disabled where they were invoked."""
        if ctx.command is None:
            return True
        allowed = self.is_command_enabled(ctx.guild, ctx.command)
        if not allowed:
            logger.debug("[PYCORD HOST] Blocked disabled command %s", ctx.command.name)
        return allowed

    def install_check(self) -> None:
        self.bot.add_check(self.command_check)

    # ========== User-facing changes (fire events) ==========

    def change_prefix(self, guild: Any, prefix: Optional[str]) -> None:
        self.set_prefix_override(self._guild_id(guild), prefix)
        self.bot.dispatch("command_prefix_change", guild, prefix)

    def set_command_status(self, guild: Any, command: Any, enabled: bool) -> None:
        self.set_command_enabled(self._guild_id(guild), command, enabled)
        self.bot.dispatch("command_status_change", guild, command, enabled)

    def set_group_status(self, guild: Any, group: Any, enabled: bool) -> None:
        self.set_group_enabled(self._guild_id(guild), group, enabled)
        self.bot.dispatch("group_status_change", guild, group, enabled)

    # ========== Private Methods ==========

    def _group_of(self, command: Any) -> Optional[CommandGroup]:
        cog = getattr(command, "cog", None)
        if cog is None:
            return None
        return self._groups.get(cog.qualified_name.lower())

    @staticmethod
    def _guild_id(guild: Any) -> Optional[str]:
        scope = resolve_scope(guild)
        return None if scope == GLOBAL_SCOPE else scope

    @staticmethod
    def _lookup(
        per_guild: Dict[str, Dict[str, bool]],
        bot_wide: Dict[str, bool],
        guild_id: Optional[str],
        name: str,
    ) -> bool:
        if guild_id is not None and name in per_guild.get(guild_id, {}):
            return per_guild[guild_id][name]
        return bot_wide.get(name, True)
