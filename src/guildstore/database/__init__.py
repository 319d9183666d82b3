"""
Database package for guildstore.

- **db_connection.py**: one long-lived aiosqlite connection with serialised
  write transactions and sqlite error translation.
- **db_schema.py**: the dynamic settings table, its column cache and
  on-demand column creation.
- **errors.py**: the store's error kinds.
"""
