"""Shared fixtures."""

from __future__ import annotations

import os
from datetime import datetime, timezone

import pytest
from loguru import logger

from powermeter.storage import MemorySeriesStore, StoreError

ENV_PREFIXES = ("REDIS_", "POWER_")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate tests from the caller's environment and any .env file."""
    for key in list(os.environ):
        if key.startswith(ENV_PREFIXES):
            monkeypatch.delenv(key)

    import powermeter.config.settings as settings_module

    monkeypatch.setattr(settings_module, "_settings", None)
    monkeypatch.chdir(tmp_path)
    yield


@pytest.fixture(autouse=True)
def reset_loguru():
    """Drop sinks a command added so they never outlive the captured streams."""
    yield
    logger.remove()


def utc(*args: int) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def sample(pulses: int = 10, kwh: float = 0.001, timestamp: int = 1454284800000) -> dict:
    return {"timestamp": timestamp, "pulseCount": pulses, "kWh": kwh, "watt": kwh * 3600 * 1000}


class FlakyStore(MemorySeriesStore):
    """Memory store whose writes to some series fail."""

    def __init__(self, fail_on: set[str] | None = None, **kwargs) -> None:
        super().__init__(**kwargs)
        self.fail_on = set(fail_on or ())

    def push(self, series, record):
        if series in self.fail_on:
            raise StoreError(f"connection lost while writing {series}", operation="push", series=series)
        return super().push(series, record)
