"""``powermeter run``: the long-running updater process."""

from __future__ import annotations

import click

from .. import __version__
from ..config.settings import ConfigError
from ..observability.loguru_config import get_logger
from ..pipelines.updater import create_updater
from ..storage.series_store import StoreError
from . import cli_common
from .cli_common import ExitCode


@click.command("run")
@click.option("--env-file", type=click.Path(dir_okay=False), help="Path to .env file")
def cli(env_file: str | None) -> int:
    """Start the scheduler and aggregate rollups until interrupted."""
    try:
        settings = cli_common.load_cli_settings(env_file)
    except ConfigError as exc:
        return cli_common.config_error(exc)

    log = get_logger("updater")
    log.info(f"Starting power-meter-updater v{__version__}")

    try:
        store = cli_common.open_store(settings)
        store.ping()
        updater = create_updater(store, settings)
    except ConfigError as exc:
        return cli_common.config_error(exc)
    except StoreError as exc:
        log.error(f"{exc} - will exit.")
        return int(ExitCode.IO_ERROR)

    updater.start()
    code = updater.run_forever()
    return int(ExitCode.IO_ERROR) if code else int(ExitCode.SUCCESS)
