"""Cog attaching the settings provider to the bot once it is ready."""

from discord.ext import commands

from guildstore.bot.pycord_host import PycordSettingsHost
from guildstore.settings.provider import GuildSettingsProvider
from guildstore.util.logger import get_logger

logger = get_logger("settings_cog")


class SettingsSyncCog(commands.Cog):
    """Registers commands with the host and initializes the provider on ready."""

    def __init__(self, discord_bot_instance, host: PycordSettingsHost, provider: GuildSettingsProvider):
        self.discord_bot_instance = discord_bot_instance
        self.host = host
        self.provider = provider
        logger.info("[SETTINGS COG] Settings sync cog loaded")

    @commands.Cog.listener(name="on_ready")
    async def on_ready(self):
        """
        Wire settings into the live bot.

        on_ready fires again after reconnects, so the provider is only
        initialized the first time.
        """
        if self.provider.initialized:
            logger.debug("[SETTINGS COG] Provider already initialized, ignoring on_ready")
            return

        self.host.register_bot_commands()
        self.host.install_check()
        await self.provider.init(self.host)
        logger.info("[SETTINGS COG] Settings provider attached to %s", self.discord_bot_instance.user)


def setup(discord_bot_instance, host: PycordSettingsHost, provider: GuildSettingsProvider):
    """Register the SettingsSyncCog with the bot."""
    discord_bot_instance.add_cog(SettingsSyncCog(discord_bot_instance, host, provider))
