from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from guildstore.bot import settings_cog
from guildstore.bot.pycord_host import CommandGroup, PycordSettingsHost
from guildstore.settings.provider import GuildSettingsProvider
from guildstore.sync.host import SettingsHost


class FakeCog:
    def __init__(self, name, commands=()):
        self.qualified_name = name
        self._commands = list(commands)

    def get_commands(self):
        return list(self._commands)


def make_command(name, cog=None):
    return SimpleNamespace(name=name, cog=cog)


@pytest.fixture
def fake_bot():
    guilds = {111: SimpleNamespace(id=111), 222: SimpleNamespace(id=222)}
    return SimpleNamespace(
        get_guild=lambda guild_id: guilds.get(guild_id),
        add_listener=MagicMock(),
        remove_listener=MagicMock(),
        dispatch=MagicMock(),
        add_check=MagicMock(),
        cogs={},
        application_commands=[],
        user=SimpleNamespace(id=999, display_name="SettingsBot"),
    )


@pytest.fixture
def host(fake_bot):
    return PycordSettingsHost(fake_bot)


def test_host_satisfies_protocol(host):
    assert isinstance(host, SettingsHost)


def test_has_guild(host):
    assert host.has_guild("111") is True
    assert host.has_guild("333") is False
    assert host.has_guild("not-a-snowflake") is False


def test_listeners_delegate_to_bot(host, fake_bot):
    async def listener(*args):
        return None

    host.add_listener(listener, "on_command_register")
    host.remove_listener(listener, "on_command_register")

    fake_bot.add_listener.assert_called_once_with(listener, "on_command_register")
    fake_bot.remove_listener.assert_called_once_with(listener, "on_command_register")


def test_register_bot_commands(host, fake_bot):
    cog = FakeCog("Moderation")
    ban = make_command("ban", cog=cog)
    cog._commands.append(ban)
    ping = make_command("ping")
    fake_bot.cogs = {"Moderation": cog}
    fake_bot.application_commands = [ban, ping]

    assert host.register_bot_commands() == 2

    assert [group.id for group in host.groups] == ["moderation"]
    assert {command.name for command in host.commands} == {"ban", "ping"}
    dispatched = [call.args[0] for call in fake_bot.dispatch.call_args_list]
    assert dispatched == ["group_register", "command_register", "command_register"]


def test_command_group_from_cog():
    cog = FakeCog("Utility")
    group = CommandGroup.from_cog(cog)
    assert group == CommandGroup(id="utility", name="Utility")
    assert group.cog is cog


class TestEnablement:
    def test_defaults_to_enabled(self, host):
        assert host.is_command_enabled(SimpleNamespace(id=111), make_command("ping")) is True

    def test_guild_flag_overrides_global(self, host):
        ping = make_command("ping")
        host.set_command_enabled(None, ping, False)
        host.set_command_enabled("111", ping, True)

        assert host.is_command_enabled(SimpleNamespace(id=111), ping) is True
        assert host.is_command_enabled(SimpleNamespace(id=222), ping) is False
        assert host.is_command_enabled(None, ping) is False

    def test_disabled_group_disables_its_commands(self, host):
        cog = FakeCog("Fun")
        joke = make_command("joke", cog=cog)
        cog._commands.append(joke)
        group = host.register_group(cog)

        host.set_group_enabled("111", group, False)

        assert host.is_command_enabled(SimpleNamespace(id=111), joke) is False
        assert host.is_command_enabled(SimpleNamespace(id=222), joke) is True

    @pytest.mark.asyncio
    async def test_command_check(self, host):
        ping = make_command("ping")
        host.set_command_enabled("111", ping, False)

        blocked = SimpleNamespace(command=ping, guild=SimpleNamespace(id=111))
        allowed = SimpleNamespace(command=ping, guild=None)

        assert await host.command_check(blocked) is False
        assert await host.command_check(allowed) is True
        assert await host.command_check(SimpleNamespace(command=None, guild=None)) is True

    def test_install_check(self, host, fake_bot):
        host.install_check()
        fake_bot.add_check.assert_called_once_with(host.command_check)


class TestPrefixes:
    def test_guild_override_falls_back_to_global(self, host):
        host.set_prefix_override(None, "!")
        host.set_prefix_override("111", "?")

        assert host.get_prefix(SimpleNamespace(id=111)) == "?"
        assert host.get_prefix(SimpleNamespace(id=222)) == "!"
        assert host.get_prefix() == "!"

    def test_cleared_override_uses_global(self, host):
        host.set_prefix_override("111", None)
        assert host.get_prefix("111") == host.global_prefix

    def test_change_prefix_fires_event(self, host, fake_bot):
        guild = SimpleNamespace(id=111)
        host.change_prefix(guild, "$")

        assert host.get_prefix(guild) == "$"
        fake_bot.dispatch.assert_called_once_with("command_prefix_change", guild, "$")

    def test_status_changes_fire_events(self, host, fake_bot):
        guild = SimpleNamespace(id=222)
        ping = make_command("ping")
        group = CommandGroup(id="fun", name="Fun")

        host.set_command_status(guild, ping, False)
        host.set_group_status(guild, group, False)

        assert host.is_command_enabled(guild, ping) is False
        assert host.is_group_enabled(guild, group) is False
        fake_bot.dispatch.assert_any_call("command_status_change", guild, ping, False)
        fake_bot.dispatch.assert_any_call("group_status_change", guild, group, False)


@pytest.mark.asyncio
async def test_provider_attaches_to_pycord_host(store_config, host, fake_bot):
    settings_provider = GuildSettingsProvider(store_config)
    await settings_provider.open()
    await settings_provider.set("111", "prefix", "?")
    await settings_provider.set("global", "cmd-ping", False)
    host.register_command(make_command("ping"))

    await settings_provider.init(host)
    try:
        assert host.get_prefix("111") == "?"
        assert host.is_command_enabled("222", make_command("ping")) is False
        registered = {call.args[1] for call in fake_bot.add_listener.call_args_list}
        assert "on_guild_join" in registered and len(registered) == 6
    finally:
        await settings_provider.shutdown()

    assert fake_bot.remove_listener.call_count == 6


@pytest.mark.asyncio
async def test_settings_cog_initializes_provider_once(fake_bot):
    cog = FakeCog("Moderation")
    fake_bot.cogs = {"Moderation": cog}
    fake_bot.add_cog = MagicMock()

    host = PycordSettingsHost(fake_bot)
    provider = SimpleNamespace(initialized=False, init=AsyncMock())

    settings_cog.setup(fake_bot, host, provider)
    sync_cog = fake_bot.add_cog.call_args.args[0]

    await sync_cog.on_ready()
    provider.init.assert_awaited_once_with(host)
    fake_bot.add_check.assert_called_once_with(host.command_check)
    assert [group.id for group in host.groups] == ["moderation"]

    provider.initialized = True
    await sync_cog.on_ready()
    provider.init.assert_awaited_once()
