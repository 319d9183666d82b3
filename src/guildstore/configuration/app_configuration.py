from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import fcntl
from typing import Any, Dict
import yaml

from guildstore.util.logger import get_logger

logger = get_logger("app_configuration")


CONFIG_PATH = Path("./config/app_config.yml").resolve()

DEFAULT_DATABASE_PATH = "./data/settings.db"
DEFAULT_TABLE_NAME = "settings"
DEFAULT_ENABLED_VALUE = "1"
DEFAULT_CACHE_TTL_SECONDS = 60.0


@dataclass(frozen=True)
class SettingsStoreConfig:
    """Resolved ``settings_store`` section of the application config."""
    database_path: Path
    table_name: str = DEFAULT_TABLE_NAME
    enabled_value: str = DEFAULT_ENABLED_VALUE
    read_cache_enabled: bool = False
    read_cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS


class AppConfig:
    """File-lock based accessor around the YAML application configuration.

    The class caches the contents of ``./config/app_config.yml`` and exposes
    dictionary-like helpers plus the typed :class:`SettingsStoreConfig`.
    Reads take a shared fcntl lock so a concurrent editor never hands us a
    half-written file.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    # --------------------------
    # Private helpers
    # --------------------------
    def load_from_disk(self) -> Dict[str, Any]:
        try:
            with self.config_path.open("r", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_SH)
                try:
                    data = yaml.safe_load(f)
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] Config file %s not found.", self.config_path)
            return {}
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Failed to load config %s: %s", self.config_path, exc)
            return {}

        if not isinstance(data, dict):
            if data is not None:
                logger.error("[APP CONFIGURATION] Config %s is not a mapping; ignoring it", self.config_path)
            return {}
        return data

    # --------------------------
    # Public API
    # --------------------------
    def reload(self) -> Dict[str, Any]:
        """Re-read the YAML file, replace the in-memory cache and return it.

        Returns an empty dict when the file is missing or malformed.
        """
        self._data = self.load_from_disk()
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached configuration mapping. Callers should not mutate it."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Safe lookup for top-level configuration keys."""
        return self._data.get(key, default)

    # --------------------------
    # High-level shortcuts
    # --------------------------
    @property
    def settings_store(self) -> SettingsStoreConfig:
        """Return the settings store section with defaults filled in.

        Relative database paths are resolved against the working directory,
        which ``main`` pins to the project base directory.
        """
        section = self._data.get("settings_store", {})
        if not isinstance(section, dict):
            section = {}

        cache = section.get("read_cache", {})
        if not isinstance(cache, dict):
            cache = {}

        return SettingsStoreConfig(
            database_path=Path(section.get("database_path") or DEFAULT_DATABASE_PATH).resolve(),
            table_name=str(section.get("table_name") or DEFAULT_TABLE_NAME),
            enabled_value=str(section.get("enabled_value", DEFAULT_ENABLED_VALUE)),
            read_cache_enabled=bool(cache.get("enabled", False)),
            read_cache_ttl_seconds=float(cache.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS)),
        )


# Shared application-wide configuration instance
app_config = AppConfig(CONFIG_PATH)
