"""Configuration loading.

Settings are loaded in priority order (highest first):
  1. Environment variables  (SHELFSCAN__REFRESH__MAX_IN_FLIGHT=2)
  2. shelfscan.yaml         (searched in cwd, then ~/.config/shelfscan/)
  3. Hardcoded defaults

The config file is optional; all fields have sensible defaults.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import platformdirs
from pydantic import BaseModel, ConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

_DEFAULT_DATA_DIR = platformdirs.user_data_dir("shelfscan")
_DEFAULT_DB_PATH = str(Path(_DEFAULT_DATA_DIR) / "store.db")


def _find_config_file() -> str | None:
    """Return the path of the first shelfscan.yaml found, or None."""
    candidates = [
        Path("shelfscan.yaml"),
        Path.home() / ".config" / "shelfscan" / "shelfscan.yaml",
    ]
    for path in candidates:
        if path.exists():
            return str(path)
    return None


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class ApiSettings(_Section):
    base_url: str = "http://localhost:8080"
    timeout_seconds: float = 30.0


class UpstreamSettings(_Section):
    base_url: str = "https://thunder.api.overdrive.com"
    timeout_seconds: float = 15.0


class SearchSettings(_Section):
    # Narrow (phone-sized) contexts type slower, so wait longer before querying.
    narrow_debounce_ms: int = 700
    wide_debounce_ms: int = 100
    narrow_width_threshold: int = 900


class RefreshSettings(_Section):
    favorites_delay_ms: int = 100
    non_favorites_delay_ms: int = 500
    max_in_flight: int = 4
    cancel_on_teardown: bool = True


class StoreSettings(_Section):
    db_path: str = _DEFAULT_DB_PATH


class LoggingSettings(_Section):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: Literal["json", "text"] = "text"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        # Double-underscore separates nesting: SHELFSCAN__API__BASE_URL=http://...
        env_prefix="SHELFSCAN__",
        env_nested_delimiter="__",
        yaml_file=_find_config_file(),
        yaml_file_encoding="utf-8",
    )

    api: ApiSettings = ApiSettings()
    upstream: UpstreamSettings = UpstreamSettings()
    search: SearchSettings = SearchSettings()
    refresh: RefreshSettings = RefreshSettings()
    store: StoreSettings = StoreSettings()
    logging: LoggingSettings = LoggingSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
        **kwargs: Any,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,  # Constructor args (highest priority)
            env_settings,  # Environment variables
            YamlConfigSettingsSource(settings_cls),  # YAML file
            # dotenv and file secrets intentionally excluded
        )
