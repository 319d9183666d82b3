"""
Utilities for guildstore.

- **logger.py**: Centralized logging with colored prompt_toolkit console
  output, one rotating log file per session, and quieted library loggers
  (aiosqlite, Discord internals).
"""
