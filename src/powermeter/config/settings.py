"""Centralized configuration for the power meter updater.

Loads configuration from a .env file and the process environment, with
optional per-tier retention overrides from a YAML file.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import pytz
import yaml

from ..core.time import from_epoch_ms

__all__ = [
    "ERROR_POLICIES",
    "ConfigError",
    "Settings",
    "get_settings",
    "load_env_file",
    "load_retention_overrides",
    "load_settings",
]

ERROR_POLICIES = ("degrade", "fail_fast")


class ConfigError(Exception):
    """Raised when configuration is missing or invalid."""

    pass


@dataclass
class Settings:
    """Settings for the updater process.

    Attributes
    ----------
    redis_host : str
        Redis server hostname
    redis_port : int
        Redis server port
    redis_password : str | None
        Redis password (``REDIS_AUTH``)
    redis_db : int
        Redis database index
    timezone : str
        Timezone whose calendar drives the rollup boundaries
    start_time : datetime | None
        Initial virtual clock value (``POWER_SET_TIME``, epoch milliseconds)
    error_policy : str
        ``degrade`` logs store failures and carries on, ``fail_fast`` stops
        the updater on the first one
    log_level : str
        Logging level
    log_dir : Path | None
        Directory for JSONL log files (console only when unset)
    config_file : Path | None
        YAML file with a ``retention`` mapping
    retention_overrides : dict[str, int]
        Per-series retention limits replacing the defaults
    """

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0

    timezone: str = "UTC"
    start_time: datetime | None = None
    error_policy: str = "degrade"

    # Logging
    log_level: str = "INFO"
    log_dir: Path | None = None

    config_file: Path | None = None
    retention_overrides: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.log_dir and isinstance(self.log_dir, str):
            self.log_dir = Path(self.log_dir)
        if self.config_file and isinstance(self.config_file, str):
            self.config_file = Path(self.config_file)

        self.log_level = self.log_level.upper()

        if self.error_policy not in ERROR_POLICIES:
            raise ConfigError(
                f"POWER_ERROR_POLICY must be one of {', '.join(ERROR_POLICIES)}, got: {self.error_policy!r}"
            )

        try:
            pytz.timezone(self.timezone)
        except pytz.UnknownTimeZoneError as exc:
            raise ConfigError(f"POWER_TIMEZONE is not a known timezone: {self.timezone!r}") from exc

        if not 0 < self.redis_port < 65536:
            raise ConfigError(f"REDIS_PORT must be between 1 and 65535, got: {self.redis_port}")

        if self.config_file and not self.retention_overrides:
            self.retention_overrides = load_retention_overrides(self.config_file)

    @property
    def redis_url(self) -> str:
        """Connection URL without credentials, for logging."""
        return f"redis://{self.redis_host}:{self.redis_port}/{self.redis_db}"

    @classmethod
    def from_env(cls, env_file: Path | str | None = None) -> Settings:
        """Load settings from environment.

        Loads from .env file if present, then from os.environ.

        Parameters
        ----------
        env_file
            Path to .env file (default: .env in current directory)

        Raises
        ------
        ConfigError
            If a setting is present but invalid
        """
        if env_file is None:
            env_file = Path(".env")
        if isinstance(env_file, str):
            env_file = Path(env_file)

        if env_file.exists():
            load_env_file(env_file)

        try:
            start_time = os.environ.get("POWER_SET_TIME")
            log_dir = os.environ.get("POWER_LOG_DIR")
            config_file = os.environ.get("POWER_CONFIG_FILE")

            return cls(
                redis_host=os.environ.get("REDIS_HOST", "localhost"),
                redis_port=int(os.environ.get("REDIS_PORT", "6379")),
                redis_password=os.environ.get("REDIS_AUTH") or None,
                redis_db=int(os.environ.get("REDIS_DB", "0")),
                timezone=os.environ.get("POWER_TIMEZONE", "UTC"),
                start_time=from_epoch_ms(start_time) if start_time else None,
                error_policy=os.environ.get("POWER_ERROR_POLICY", "degrade").lower(),
                log_level=os.environ.get("POWER_LOG_LEVEL", "INFO"),
                log_dir=Path(log_dir) if log_dir else None,
                config_file=Path(config_file) if config_file else None,
            )

        except (ValueError, OverflowError) as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc


def load_env_file(env_file: Path) -> None:
    """Load KEY=VALUE lines from a .env file into os.environ.

    Comments and blank lines are skipped and surrounding quotes stripped.
    """
    with open(env_file) as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "=" in line:
                key, value = line.split("=", 1)
                key = key.strip()
                value = value.strip()

                if (value.startswith('"') and value.endswith('"')) or (value.startswith("'") and value.endswith("'")):
                    value = value[1:-1]

                os.environ[key] = value


def load_retention_overrides(config_file: Path) -> dict[str, int]:
    """Read the ``retention`` mapping from a YAML config file.

    Example file::

        retention:
          seconds: 4200
          minutes: 1560

    Raises
    ------
    ConfigError
        If the file is missing, unparsable, or holds non-positive limits
    """
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    try:
        with open(config_file, encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {config_file}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_file} must contain a mapping")

    retention = data.get("retention") or {}
    if not isinstance(retention, dict):
        raise ConfigError(f"'retention' in {config_file} must be a mapping of series name to limit")

    overrides: dict[str, int] = {}
    for name, limit in retention.items():
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ConfigError(f"Retention limit for {name!r} must be a positive integer, got: {limit!r}")
        overrides[str(name)] = limit

    return overrides


# Global settings instance
_settings: Settings | None = None


def load_settings(env_file: Path | str | None = None) -> Settings:
    """Load settings from environment and remember them process-wide."""
    global _settings
    _settings = Settings.from_env(env_file)
    return _settings


def get_settings() -> Settings:
    """Get current settings.

    Raises
    ------
    ConfigError
        If settings not loaded
    """
    if _settings is None:
        raise ConfigError("Settings not loaded. Call load_settings() first.")
    return _settings
