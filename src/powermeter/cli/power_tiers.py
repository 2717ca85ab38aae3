"""``powermeter tiers`` and ``powermeter boundaries``: inspect configuration."""

from __future__ import annotations

import click
import pytz

from ..config.settings import ConfigError, load_settings
from ..core.scheduler import BOUNDARIES
from ..rollups.tiers import build_tiers
from ..rollups.time_windows import to_local
from . import cli_common


@click.command("tiers")
@click.option("--env-file", type=click.Path(dir_okay=False), help="Path to .env file")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def tiers_cli(env_file: str | None, json_output: bool) -> int:
    """Show every series with its source, window and retention limit."""
    try:
        tiers = build_tiers(load_settings(env_file).retention_overrides)
    except ConfigError as exc:
        return cli_common.config_error(exc)

    rows = [
        {
            "name": t.name,
            "source": t.source,
            "window": t.window_length if t.window_length is not None else ("calendar" if t.source else None),
            "retention": t.retention_limit,
        }
        for t in tiers
    ]

    if json_output:
        cli_common.emit(rows, json_output=True)
    else:
        click.echo(f"{'series':<12} {'source':<12} {'window':>8} {'retention':>10}")
        for row in rows:
            click.echo(
                f"{row['name']:<12} {row['source'] or '-':<12} {str(row['window'] or '-'):>8} {row['retention']:>10}"
            )
    return 0


@click.command("boundaries")
@click.option("--at", "at", required=True, help="Instant to evaluate (ISO-8601)")
@click.option("--timezone", "tz", help="Timezone of the calendar (default: POWER_TIMEZONE or UTC)")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def boundaries_cli(at: str, tz: str | None, json_output: bool) -> int:
    """List the tiers that fire at a given minute."""
    clock = cli_common.parse_instant(at)
    try:
        timezone = tz or load_settings().timezone
        local = to_local(clock, timezone)
    except ConfigError as exc:
        return cli_common.config_error(exc)
    except pytz.UnknownTimeZoneError as exc:
        click.echo(f"Unknown timezone: {exc}", err=True)
        return int(cli_common.ExitCode.USAGE_ERROR)

    tiers = [name for predicate, name in BOUNDARIES if predicate(local)]
    cli_common.emit({"local_time": local.isoformat(), "tiers": tiers} if json_output else tiers, json_output=json_output)
    return 0
