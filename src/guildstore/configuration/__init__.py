"""
Configuration management for guildstore.

- **app_configuration.py**: fcntl-locked YAML loader for ``config/app_config.yml``.
  Exposes the ``settings_store`` section (database path, table name, enabled
  value, read cache toggles) as a typed :class:`SettingsStoreConfig`, falling
  back to defaults on missing or malformed files.
"""
