"""
Pytest configuration and fixtures for guildstore tests.
"""

import sys
from pathlib import Path

# Add src directory to path so imports work without installing the package
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

import sqlite3
from types import SimpleNamespace

import pytest
import pytest_asyncio

from guildstore.configuration.app_configuration import SettingsStoreConfig
from guildstore.settings.provider import GuildSettingsProvider


class FakeHost:
    """In-memory settings host recording the live state the engine applies."""

    def __init__(self, guild_ids=(), commands=(), groups=()):
        self.guild_ids = set(guild_ids)
        self.listeners = {}
        self.commands = list(commands)
        self.groups = list(groups)
        self.global_prefix = None
        self.prefixes = {}
        self.command_flags = {}
        self.group_flags = {}

    # event bus
    def add_listener(self, func, name):
        self.listeners.setdefault(name, []).append(func)

    def remove_listener(self, func, name):
        if func in self.listeners.get(name, []):
            self.listeners[name].remove(func)

    async def dispatch(self, name, *args):
        for listener in list(self.listeners.get(name, [])):
            await listener(*args)

    def listener_count(self):
        return sum(len(funcs) for funcs in self.listeners.values())

    # registry
    def has_guild(self, guild_id):
        return guild_id in self.guild_ids

    # live state
    def set_prefix_override(self, guild_id, prefix):
        if guild_id is None:
            self.global_prefix = prefix
        else:
            self.prefixes[guild_id] = prefix

    def set_command_enabled(self, guild_id, command, enabled):
        self.command_flags[(guild_id, command.name)] = enabled

    def set_group_enabled(self, guild_id, group, enabled):
        self.group_flags[(guild_id, group.id)] = enabled


def make_command(name):
    return SimpleNamespace(name=name)


def make_group(group_id):
    return SimpleNamespace(id=group_id)


def table_columns(db_path, table="settings"):
    """Column names of a table, read with a separate sqlite3 connection."""
    conn = sqlite3.connect(db_path)
    try:
        return [row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()]
    finally:
        conn.close()


@pytest.fixture
def store_config(tmp_path):
    return SettingsStoreConfig(database_path=tmp_path / "settings.db")


@pytest.fixture
def cached_store_config(tmp_path):
    return SettingsStoreConfig(
        database_path=tmp_path / "settings.db",
        read_cache_enabled=True,
        read_cache_ttl_seconds=300,
    )


@pytest_asyncio.fixture
async def provider(store_config):
    """A provider with its table created but not attached to any host."""
    settings_provider = GuildSettingsProvider(store_config)
    await settings_provider.open()
    yield settings_provider
    await settings_provider.shutdown()


@pytest.fixture
def fake_host():
    return FakeHost(
        guild_ids={"111", "222"},
        commands=[make_command("ping"), make_command("ban")],
        groups=[make_group("util"), make_group("mod")],
    )
