"""
guildstore bot runner
=====================

Starts a py-cord bot whose per-guild prefixes and command/group enablement
are kept in the guildstore settings database.
"""

import os
import sys
from pathlib import Path

def resolve_base_dir() -> Path:
    """Determine the project base directory.

    Resolution order:
    1. GUILDSTORE_HOME environment variable, if set.
    2. The executable's directory when running frozen (PyInstaller, Nuitka).
    3. Otherwise the repository root, two levels above this package.
    """
    if env_home := os.getenv("GUILDSTORE_HOME"):
        return Path(env_home).resolve()

    if getattr(sys, "frozen", False) or getattr(sys, "compiled", False):
        return Path(sys.argv[0]).resolve().parent

    return Path(__file__).resolve().parents[2]

BASE_DIR = resolve_base_dir()
os.chdir(BASE_DIR)

import asyncio
import discord
from dotenv import load_dotenv

from guildstore.bot import settings_cog
from guildstore.bot.pycord_host import PycordSettingsHost
from guildstore.database.errors import SettingsStoreError
from guildstore.settings.provider import GuildSettingsProvider
from guildstore.util.logger import get_logger, handle_exception


logger = get_logger("main")


def load_environment() -> str:
    """Load ``.env`` and return the Discord bot token.

    Raises
    ------
    SystemExit
        If ``DISCORD_BOT_TOKEN`` is missing.
    """
    load_dotenv(dotenv_path=BASE_DIR / ".env")
    token = os.getenv("DISCORD_BOT_TOKEN")
    if not token:
        logger.critical("'DISCORD_BOT_TOKEN' environment variable not set. Bot cannot start.")
        sys.exit(1)
    return token


def build_intents() -> discord.Intents:
    intents = discord.Intents.default()
    intents.guilds = True
    return intents


def create_bot(provider: GuildSettingsProvider) -> tuple[discord.Bot, PycordSettingsHost]:
    """Instantiate the bot, its settings host and the settings cog."""
    bot = discord.Bot(intents=build_intents())
    host = PycordSettingsHost(bot)
    settings_cog.setup(bot, host, provider)
    return bot, host


async def shutdown_runtime(bot: discord.Bot, provider: GuildSettingsProvider) -> None:
    """Detach the settings provider, then close the bot."""
    try:
        await provider.shutdown()
    except SettingsStoreError as exc:
        logger.exception("Error during settings provider shutdown: %s", exc)

    if not bot.is_closed():
        await bot.close()
    logger.info("Shutdown complete.")


async def async_main() -> int:
    """Run the bot until it disconnects, returning an exit code."""
    token = load_environment()
    provider = GuildSettingsProvider()

    try:
        bot, _host = create_bot(provider)
    except Exception as exc:
        logger.critical("Failed to initialize Discord bot: %s", exc)
        return 1

    exit_code = 0
    logger.info("Attempting to connect to Discord…")
    try:
        await bot.start(token)
    except asyncio.CancelledError:
        logger.info("Discord bot start cancelled; shutting down")
    except (discord.DiscordException, SettingsStoreError) as exc:
        logger.critical("Discord bot runtime error: %s", exc)
        exit_code = 1
    finally:
        await shutdown_runtime(bot, provider)

    return exit_code


def main() -> int:
    """Console entrypoint; returns the process exit code."""
    sys.excepthook = handle_exception
    logger.info("Starting guildstore bot…")
    try:
        return asyncio.run(async_main())
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user.")
        return 0


if __name__ == "__main__":
    sys.exit(main())
