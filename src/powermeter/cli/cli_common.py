"""Common CLI utilities: stable exit codes, JSON output, store access."""

from __future__ import annotations

import json
from enum import IntEnum
from typing import TYPE_CHECKING, Any

import click

from ..config.settings import ConfigError, load_settings
from ..core.time import parse_utc_iso8601
from ..observability.loguru_config import configure_loguru
from ..storage.redis_store import create_redis_store

if TYPE_CHECKING:
    from datetime import datetime

    from ..config.settings import Settings
    from ..storage.series_store import SeriesStore

__all__ = [
    "ExitCode",
    "emit",
    "load_cli_settings",
    "open_store",
    "parse_instant",
]


class ExitCode(IntEnum):
    """Stable exit codes for CLI commands."""

    SUCCESS = 0
    USAGE_ERROR = 2  # Bad argument value
    IO_ERROR = 5  # Store unreachable or failed
    CONFIG_ERROR = 6  # Configuration error
    UNKNOWN_ERROR = 7


def load_cli_settings(env_file: str | None, *, console: bool = True) -> Settings:
    """Load settings and configure logging for a command.

    Raises
    ------
    ConfigError
        If settings are invalid
    """
    settings = load_settings(env_file)
    configure_loguru(log_dir=settings.log_dir, level=settings.log_level, enable_console=console)
    return settings


def open_store(settings: Settings) -> SeriesStore:
    """Store used by commands that touch series data."""
    return create_redis_store(settings)


def parse_instant(value: str) -> datetime:
    """Parse an ``--at`` value (ISO-8601, UTC when no offset is given).

    Raises
    ------
    click.BadParameter
        If the value is not ISO-8601
    """
    try:
        return parse_utc_iso8601(value)
    except ValueError as exc:
        raise click.BadParameter(f"not an ISO-8601 timestamp: {value}", param_hint="--at") from exc


def emit(data: Any, *, json_output: bool) -> None:
    """Print command output as JSON or as ``key: value`` lines."""
    if json_output:
        click.echo(json.dumps(data, ensure_ascii=False, indent=2, default=str))
    elif isinstance(data, dict):
        for key, value in data.items():
            click.echo(f"{key}: {value}")
    elif isinstance(data, list):
        for item in data:
            click.echo(f"  - {item}")
    else:
        click.echo(data)


def config_error(exc: ConfigError) -> int:
    click.echo(f"Configuration error: {exc}", err=True)
    return int(ExitCode.CONFIG_ERROR)
