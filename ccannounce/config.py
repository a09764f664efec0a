"""Configuration management for ccAnnounce.

Provides centralized configuration with TOML support and validation,
loaded hierarchically from defaults -> config file -> environment.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import toml

from ccannounce.exceptions import ConfigurationError
from ccannounce.logging_config import get_logger, setup_logging
from ccannounce.models import AnnounceConfig, Config, ObservabilityConfig

logger = get_logger(__name__)

# Global configuration instance
_config_manager: ConfigManager | None = None

# Environment variable -> dotted config path
ENV_MAPPINGS: dict[str, str] = {
    # Announce
    "CCANNOUNCE_DEFAULT_INTERVAL": "announce.default_interval",
    "CCANNOUNCE_STOP_GRACE_DELAY": "announce.stop_grace_delay",
    "CCANNOUNCE_REQUEST_TIMEOUT": "announce.request_timeout",
    "CCANNOUNCE_NUMWANT": "announce.numwant",
    "CCANNOUNCE_COMPACT": "announce.compact",
    "CCANNOUNCE_USER_AGENT": "announce.user_agent",
    # Observability
    "CCANNOUNCE_LOG_LEVEL": "observability.log_level",
    "CCANNOUNCE_LOG_FILE": "observability.log_file",
    "CCANNOUNCE_STRUCTURED_LOGGING": "observability.structured_logging",
    "CCANNOUNCE_RICH_CONSOLE": "observability.rich_console",
}


def _parse_env_value(raw: str) -> bool | int | float | str:
    low = raw.lower()
    if low in {"true", "yes", "on"}:
        return True
    if low in {"false", "no", "off"}:
        return False
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


def _set_nested(d: dict[str, Any], path: str, value: Any) -> None:
    parts = path.split(".")
    cur = d
    for p in parts[:-1]:
        cur = cur.setdefault(p, {})
    cur[parts[-1]] = value


class ConfigManager:
    """Manages configuration loading and validation."""

    def __init__(self, config_file: str | Path | None = None):
        """Initialize configuration manager.

        Args:
            config_file: Path to TOML config file. If None, searches for
                ccannounce.toml in the standard locations.

        """
        self.config_file = self._find_config_file(config_file)
        self.config = self._load_config()

    def _find_config_file(self, config_file: str | Path | None) -> Path | None:
        """Find configuration file in standard locations."""
        if config_file:
            return Path(config_file)

        search_paths = [
            Path.cwd() / "ccannounce.toml",
            Path.home() / ".config" / "ccannounce" / "ccannounce.toml",
            Path.home() / ".ccannounce.toml",
        ]

        for path in search_paths:
            if path.exists():
                return path

        return None

    def _load_config(self) -> Config:
        """Load configuration from file and environment."""
        config_data: dict[str, Any] = {}

        if self.config_file and self.config_file.exists():
            try:
                with open(self.config_file, encoding="utf-8") as f:
                    config_data.update(toml.load(f))
            except (OSError, toml.TomlDecodeError) as e:
                msg = f"Failed to load config file {self.config_file}: {e}"
                raise ConfigurationError(msg) from e

        config_data = self._merge_config(config_data, self._get_env_config())

        try:
            return Config(**config_data)
        except Exception as e:
            msg = f"Invalid configuration: {e}"
            raise ConfigurationError(msg) from e

    def _get_env_config(self) -> dict[str, Any]:
        """Get configuration from environment variables."""
        env_config: dict[str, Any] = {}

        for env_name, cfg_path in ENV_MAPPINGS.items():
            raw = os.getenv(env_name)
            if raw is None:
                continue
            _set_nested(env_config, cfg_path, _parse_env_value(raw))

        return env_config

    def _merge_config(
        self, base: dict[str, Any], override: dict[str, Any]
    ) -> dict[str, Any]:
        """Merge configuration dictionaries recursively."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value

        return result

    def export(self) -> str:
        """Export current configuration as TOML."""
        data = self.config.model_dump(mode="json", exclude_none=True)
        return toml.dumps(data)

    def setup_logging(self) -> None:
        """Configure logging from the observability section."""
        setup_logging(self.config.observability)


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def init_config(config_file: str | Path | None = None) -> ConfigManager:
    """Initialize the global configuration manager."""
    global _config_manager
    _config_manager = ConfigManager(config_file)
    logger.debug("Configuration loaded from %s", _config_manager.config_file or "defaults")
    return _config_manager


def reload_config() -> Config:
    """Reload configuration from file."""
    if _config_manager is None:
        msg = "Configuration not initialized"
        raise ConfigurationError(msg)

    _config_manager.config = _config_manager._load_config()
    return _config_manager.config


def set_config(new_config: Config) -> None:
    """Replace the global configuration at runtime."""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager(None)
    _config_manager.config = new_config


def reset_config() -> None:
    """Drop the global configuration so the next access reloads it."""
    global _config_manager
    _config_manager = None


def get_announce_config() -> AnnounceConfig:
    """Get announce configuration."""
    return get_config().announce


def get_observability_config() -> ObservabilityConfig:
    """Get observability configuration."""
    return get_config().observability
