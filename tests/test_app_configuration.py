import json
from pathlib import Path

import pytest

from guildstore.configuration.app_configuration import (
    DEFAULT_DATABASE_PATH,
    AppConfig,
    SettingsStoreConfig,
)


@pytest.fixture()
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "app_config.yml"


def test_app_config_reload_parses_yaml(config_path: Path, tmp_path: Path) -> None:
    config_payload = {
        "settings_store": {
            "database_path": str(tmp_path / "bot.db"),
            "table_name": "bot_settings",
            "enabled_value": "yes",
            "read_cache": {"enabled": True, "ttl_seconds": 5},
        },
    }
    # JSON is valid YAML
    config_path.write_text(json.dumps(config_payload), encoding="utf-8")

    config = AppConfig(config_path)
    store = config.settings_store

    assert store.database_path == (tmp_path / "bot.db").resolve()
    assert store.table_name == "bot_settings"
    assert store.enabled_value == "yes"
    assert store.read_cache_enabled is True
    assert store.read_cache_ttl_seconds == pytest.approx(5.0)


def test_app_config_missing_file_returns_defaults(tmp_path: Path) -> None:
    config = AppConfig(tmp_path / "does_not_exist.yml")

    assert config.data == {}
    assert config.settings_store == SettingsStoreConfig(
        database_path=Path(DEFAULT_DATABASE_PATH).resolve()
    )


def test_app_config_malformed_yaml(config_path: Path) -> None:
    config_path.write_text("settings_store: [unclosed", encoding="utf-8")

    config = AppConfig(config_path)

    assert config.data == {}
    assert config.settings_store.table_name == "settings"


def test_app_config_non_mapping_sections_fall_back(config_path: Path) -> None:
    config_path.write_text("settings_store:\n  read_cache: nope\n", encoding="utf-8")

    store = AppConfig(config_path).settings_store

    assert store.read_cache_enabled is False
    assert store.enabled_value == "1"


def test_app_config_reload_picks_up_changes(config_path: Path) -> None:
    config_path.write_text("settings_store:\n  table_name: first\n", encoding="utf-8")
    config = AppConfig(config_path)
    assert config.settings_store.table_name == "first"

    config_path.write_text("settings_store:\n  table_name: second\n", encoding="utf-8")
    assert config.get("settings_store") == {"table_name": "first"}
    config.reload()
    assert config.settings_store.table_name == "second"


def test_bundled_config_file_loads() -> None:
    bundled = Path(__file__).parent.parent / "config" / "app_config.yml"
    store = AppConfig(bundled).settings_store

    assert store.table_name == "settings"
    assert store.enabled_value == "1"
    assert store.read_cache_enabled is False
