"""Loguru configuration for the updater.

Provides:
- Coloured console output
- Structured JSONL files, one main file plus one per component
- A timing context manager for measuring aggregations
"""

from __future__ import annotations

import sys
import time
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from loguru import logger

if TYPE_CHECKING:
    from collections.abc import Generator

__all__ = [
    "COMPONENTS",
    "configure_loguru",
    "get_logger",
    "timing_context",
]

COMPONENTS = ("scheduler", "pipeline", "store", "ingest")


def configure_loguru(
    *,
    log_dir: Path | None = None,
    level: str = "INFO",
    rotation: str = "100 MB",
    retention: str = "10 days",
    compression: str = "zip",
    enable_console: bool = True,
) -> None:
    """Configure loguru sinks.

    Parameters
    ----------
    log_dir
        Directory for JSONL log files. No files are written when None.
    level
        Minimum log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    rotation
        Log rotation policy (e.g., "100 MB", "1 day")
    retention
        Log retention policy (e.g., "10 days", "1 week")
    compression
        Compression for rotated logs (zip, gz, bz2, xz)
    enable_console
        Enable console output

    Example
    -------
    >>> configure_loguru(log_dir=Path("/var/log/power-meter"), level="INFO")
    """
    # Remove default handler
    logger.remove()
    logger.configure(extra={"component": "updater"})

    if enable_console:
        logger.add(
            sys.stderr,
            format="<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[component]}</cyan> | "
            "<level>{message}</level>",
            level=level,
            colorize=True,
            backtrace=True,
            diagnose=False,
        )

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_dir / "updater.jsonl",
            format="{message}",
            level=level,
            rotation=rotation,
            retention=retention,
            compression=compression,
            serialize=True,
            backtrace=True,
            diagnose=False,
            enqueue=True,
        )

        for component in COMPONENTS:
            logger.add(
                log_dir / f"{component}.jsonl",
                format="{message}",
                level=level,
                rotation=rotation,
                retention=retention,
                compression=compression,
                serialize=True,
                enqueue=True,
                filter=lambda record, comp=component: record["extra"].get("component") == comp,
            )

    logger.bind(component="updater").info(
        "Loguru configured", log_dir=str(log_dir) if log_dir else None, level=level
    )


def get_logger(component: str = "updater") -> Any:
    """Get logger instance bound to a component.

    Parameters
    ----------
    component
        Component name (scheduler, pipeline, store, ingest)
    """
    return logger.bind(component=component)


@contextmanager
def timing_context(
    operation: str,
    *,
    component: str = "updater",
    **metadata: Any,
) -> Generator[dict[str, Any], None, None]:
    """Time a block and log its duration at DEBUG level.

    Yields
    ------
    dict
        Context dictionary the block may add fields to; they are logged
        with the end record. ``duration_ms`` is set on exit.

    Example
    -------
    >>> with timing_context("rollup.hours", component="pipeline") as ctx:
    ...     ctx["records"] = 60
    """
    start_ns = time.perf_counter_ns()
    context: dict[str, Any] = {"operation": operation, **metadata}

    try:
        yield context
    finally:
        duration_ms = (time.perf_counter_ns() - start_ns) / 1_000_000
        context["duration_ms"] = duration_ms
        logger.bind(component=component, timing=True).debug(
            f"END: {operation}",
            **{k: v for k, v in context.items() if k != "operation"},
        )
