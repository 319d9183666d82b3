"""
Capabilities the settings sync engine needs from the bot it runs in.

The engine never touches bot internals directly. A host exposes an event bus
(py-cord style ``add_listener``/``remove_listener``), guild lookup, the
registered commands and groups, and three setters for live state. Setters
take ``None`` as the guild id for bot-wide defaults.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional, Protocol, runtime_checkable

# Listener names, as passed to add_listener
EVENT_PREFIX_CHANGE = "on_command_prefix_change"            # (guild, prefix)
EVENT_COMMAND_STATUS_CHANGE = "on_command_status_change"    # (guild, command, enabled)
EVENT_GROUP_STATUS_CHANGE = "on_group_status_change"        # (guild, group, enabled)
EVENT_GUILD_JOIN = "on_guild_join"                          # (guild)
EVENT_COMMAND_REGISTER = "on_command_register"              # (command)
EVENT_GROUP_REGISTER = "on_group_register"                  # (group)

PREFIX_KEY = "prefix"


def command_key(command: Any) -> str:
    """Settings key holding a command's enabled flag."""
    return f"cmd-{command.name}"


def group_key(group: Any) -> str:
    """Settings key holding a group's enabled flag."""
    return f"grp-{group.id}"


class HostCommand(Protocol):
    name: str


class HostGroup(Protocol):
    id: str


@runtime_checkable
class SettingsHost(Protocol):
    def add_listener(self, func: Callable[..., Any], name: str) -> None: ...

    def remove_listener(self, func: Callable[..., Any], name: str) -> None: ...

    def has_guild(self, guild_id: str) -> bool: ...

    @property
    def commands(self) -> Iterable[HostCommand]: ...

    @property
    def groups(self) -> Iterable[HostGroup]: ...

    def set_prefix_override(self, guild_id: Optional[str], prefix: Optional[str]) -> None: ...

    def set_command_enabled(self, guild_id: Optional[str], command: HostCommand, enabled: bool) -> None: ...

    def set_group_enabled(self, guild_id: Optional[str], group: HostGroup, enabled: bool) -> None: ...
