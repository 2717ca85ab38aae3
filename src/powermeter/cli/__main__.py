#!/usr/bin/env python3
"""Command line entry point for the power meter updater."""

from __future__ import annotations

import sys

import click

from .. import __version__
from .power_run import cli as run_cli
from .power_tick import tick_cli, trim_cli
from .power_tiers import boundaries_cli, tiers_cli

CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
EPILOG = """
Examples:
  powermeter run                                   # Start the updater
  powermeter tiers                                 # Show series configuration
  powermeter boundaries --at 2016-02-01T00:00:00Z  # Which rollups fire at a minute
  powermeter tick --at 2016-02-01T00:00:00Z        # Aggregate one minute now
  powermeter trim                                  # Enforce retention limits
""".strip()


@click.group(
    context_settings=CONTEXT_SETTINGS,
    help="Power meter updater - rolls per-second samples up into minute to year series",
    epilog=EPILOG,
)
@click.version_option(__version__, "-v", "--version", prog_name="power-meter-updater")
def cli() -> None:
    """Root command."""


cli.add_command(run_cli, "run")
cli.add_command(tiers_cli, "tiers")
cli.add_command(boundaries_cli, "boundaries")
cli.add_command(tick_cli, "tick")
cli.add_command(trim_cli, "trim")


def main(args: list[str] | None = None) -> int:
    """Run the CLI and return its exit code."""
    try:
        normalized_args = list(args) if args is not None else None
        result = cli.main(args=normalized_args, standalone_mode=False)
        return int(result or 0)
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except click.exceptions.Abort:
        return 1
    except SystemExit as exc:  # pragma: no cover - click normalizes the exit code
        return int(exc.code) if exc.code is not None else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
