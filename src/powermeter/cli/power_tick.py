"""``powermeter tick`` and ``powermeter trim``: one-shot maintenance."""

from __future__ import annotations

import click

from ..config.settings import ConfigError
from ..core.scheduler import BOUNDARIES
from ..core.time import normalize_to_minute
from ..pipelines.rollup_pipeline import create_rollup_pipeline
from ..rollups.retention import RetentionEnforcer
from ..rollups.tiers import build_tiers
from ..rollups.time_windows import to_local
from ..storage.series_store import StoreError
from . import cli_common
from .cli_common import ExitCode


@click.command("tick")
@click.option("--at", "at", required=True, help="Minute to aggregate for (ISO-8601)")
@click.option("--env-file", type=click.Path(dir_okay=False), help="Path to .env file")
@click.option("--json", "json_output", is_flag=True, help="Output as JSON")
def tick_cli(at: str, env_file: str | None, json_output: bool) -> int:
    """Run the rollups due at one minute, synchronously."""
    clock = normalize_to_minute(cli_common.parse_instant(at))

    try:
        settings = cli_common.load_cli_settings(env_file, console=not json_output)
        pipeline = create_rollup_pipeline(
            cli_common.open_store(settings),
            retention_overrides=settings.retention_overrides,
            timezone=settings.timezone,
            error_policy=settings.error_policy,
        )
    except ConfigError as exc:
        return cli_common.config_error(exc)

    local = to_local(clock, settings.timezone)
    due = [name for predicate, name in BOUNDARIES if predicate(local)]

    try:
        results = pipeline.run_tick(due, clock)
    except StoreError as exc:
        click.echo(f"Store error: {exc}", err=True)
        return int(ExitCode.IO_ERROR)

    cli_common.emit(
        [
            {"tier": r.tier, "success": r.success, "records_read": r.records_read, "record": r.record}
            for r in results
        ]
        if json_output
        else [f"{r.tier}: {'ok' if r.success else 'failed'} ({r.records_read}/{r.window_length})" for r in results],
        json_output=json_output,
    )
    return int(ExitCode.SUCCESS) if all(r.success for r in results) else int(ExitCode.IO_ERROR)


@click.command("trim")
@click.option("--env-file", type=click.Path(dir_okay=False), help="Path to .env file")
def trim_cli(env_file: str | None) -> int:
    """Enforce retention limits on every series once."""
    try:
        settings = cli_common.load_cli_settings(env_file)
        enforcer = RetentionEnforcer(cli_common.open_store(settings), build_tiers(settings.retention_overrides))
        trimmed = enforcer.enforce_all()
    except ConfigError as exc:
        return cli_common.config_error(exc)
    except StoreError as exc:
        click.echo(f"Store error: {exc}", err=True)
        return int(ExitCode.IO_ERROR)

    cli_common.emit({name: "trimmed" if done else "ok" for name, done in trimmed.items()}, json_output=False)
    return int(ExitCode.SUCCESS)
