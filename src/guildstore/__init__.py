"""
guildstore - persistent per-guild settings for Discord bots

Settings are stored per guild (or for the bot-wide ``"global"`` scope) in a
SQLite table that gains a column the first time a key is written, and are
kept in sync with the running bot's live state.

Core Components:

- **Settings provider**: get/set/remove/clear over the dynamic settings
  table, with an optional invalidate-on-write read cache
- **Sync engine**: plays stored prefixes and command/group enablement into
  the bot at startup and persists changes as the bot reports them
- **py-cord host**: adapter holding the live state for a ``discord.Bot``

Usage:
    from guildstore.main import main
    main()
"""
