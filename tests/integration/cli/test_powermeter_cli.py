"""Integration tests for the powermeter command line."""

import json

import pytest
from conftest import FlakyStore, sample

from powermeter import __version__
from powermeter.cli import main
from powermeter.cli.cli_common import ExitCode
from powermeter.storage import MemorySeriesStore, StoreError


@pytest.fixture
def store(monkeypatch):
    store = MemorySeriesStore({"seconds": [sample(pulses=10) for _ in range(60)]})
    monkeypatch.setattr("powermeter.cli.cli_common.open_store", lambda settings: store)
    return store


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "powermeter.yaml"
    path.write_text("retention:\n  minutes: 60\n")
    monkeypatch.setenv("POWER_CONFIG_FILE", str(path))
    return path


def test_version(capsys):
    assert main(["--version"]) == ExitCode.SUCCESS
    assert __version__ in capsys.readouterr().out


def test_help(capsys):
    assert main(["--help"]) == ExitCode.SUCCESS
    assert "boundaries" in capsys.readouterr().out


class TestTiers:
    def test_json(self, capsys):
        assert main(["tiers", "--json"]) == ExitCode.SUCCESS

        rows = {row["name"]: row for row in json.loads(capsys.readouterr().out)}
        assert len(rows) == 10
        assert rows["seconds"] == {"name": "seconds", "source": None, "window": None, "retention": 90000}
        assert rows["months"]["window"] == "calendar"
        assert rows["years"] == {"name": "years", "source": "months", "window": 12, "retention": 50}

    def test_table(self, capsys):
        assert main(["tiers"]) == ExitCode.SUCCESS

        out = capsys.readouterr().out
        assert out.splitlines()[0].split() == ["series", "source", "window", "retention"]
        assert "fiveMinutes" in out

    def test_retention_override(self, capsys, config_file):
        assert main(["tiers", "--json"]) == ExitCode.SUCCESS

        rows = {row["name"]: row for row in json.loads(capsys.readouterr().out)}
        assert rows["minutes"]["retention"] == 60

    def test_invalid_config(self, capsys, monkeypatch):
        monkeypatch.setenv("POWER_ERROR_POLICY", "bogus")

        assert main(["tiers"]) == ExitCode.CONFIG_ERROR
        assert "Configuration error" in capsys.readouterr().err


class TestBoundaries:
    def test_sunday_midnight(self, capsys):
        assert main(["boundaries", "--at", "2016-01-31T00:00:00Z", "--json"]) == ExitCode.SUCCESS

        data = json.loads(capsys.readouterr().out)
        assert data["tiers"][-1] == "weeks"
        assert data["local_time"] == "2016-01-31T00:00:00+00:00"

    def test_timezone(self, capsys):
        args = ["boundaries", "--at", "2015-12-31T23:00:00Z", "--timezone", "Europe/Oslo", "--json"]

        assert main(args) == ExitCode.SUCCESS
        assert "years" in json.loads(capsys.readouterr().out)["tiers"]

    def test_plain_output(self, capsys):
        assert main(["boundaries", "--at", "2016-02-01T12:07:00Z"]) == ExitCode.SUCCESS
        assert capsys.readouterr().out.strip() == "- minutes"

    def test_unknown_timezone(self, capsys):
        args = ["boundaries", "--at", "2016-01-01T00:00:00Z", "--timezone", "Mars/Olympus"]

        assert main(args) == ExitCode.USAGE_ERROR
        assert "Unknown timezone" in capsys.readouterr().err

    def test_bad_instant(self):
        assert main(["boundaries", "--at", "yesterday"]) == ExitCode.USAGE_ERROR


class TestTick:
    def test_minute(self, capsys, store):
        assert main(["tick", "--at", "2016-02-01T00:01:00Z", "--json"]) == ExitCode.SUCCESS

        results = json.loads(capsys.readouterr().out)
        assert [r["tier"] for r in results] == ["minutes"]
        assert results[0]["record"]["count"] == 600
        assert store.length("minutes") == 1

    def test_hour(self, capsys, store):
        assert main(["tick", "--at", "2016-02-01T13:00:30Z", "--json"]) == ExitCode.SUCCESS

        results = json.loads(capsys.readouterr().out)
        assert [r["tier"] for r in results] == ["minutes", "fiveMinutes", "halfHours", "hours"]
        assert results[-1]["record"]["time"] == "2016-02-01T13:00:00.000Z"

    def test_degraded_tier_exit_code(self, monkeypatch):
        flaky = FlakyStore(fail_on={"fiveMinutes"})
        monkeypatch.setattr("powermeter.cli.cli_common.open_store", lambda settings: flaky)

        assert main(["tick", "--at", "2016-02-01T00:05:00Z"]) == ExitCode.IO_ERROR
        assert flaky.length("minutes") == 1

    def test_fail_fast(self, capsys, monkeypatch):
        flaky = FlakyStore(fail_on={"minutes"})
        monkeypatch.setattr("powermeter.cli.cli_common.open_store", lambda settings: flaky)
        monkeypatch.setenv("POWER_ERROR_POLICY", "fail_fast")

        assert main(["tick", "--at", "2016-02-01T00:05:00Z"]) == ExitCode.IO_ERROR
        assert "Store error" in capsys.readouterr().err


class TestTrim:
    def test_trims_over_limit(self, capsys, store, config_file):
        for _ in range(70):
            store.push("minutes", {"total": 1})

        assert main(["trim"]) == ExitCode.SUCCESS

        out = capsys.readouterr().out
        assert "minutes: trimmed" in out
        assert "hours: ok" in out
        assert store.length("minutes") == 60


class TestRun:
    def test_unreachable_store(self, monkeypatch):
        class DownStore(MemorySeriesStore):
            def ping(self):
                raise StoreError("Redis unreachable: Connection refused", operation="ping")

        monkeypatch.setattr("powermeter.cli.cli_common.open_store", lambda settings: DownStore())

        assert main(["run"]) == ExitCode.IO_ERROR

    def test_invalid_config(self, monkeypatch):
        monkeypatch.setenv("REDIS_PORT", "not-a-port")

        assert main(["run"]) == ExitCode.CONFIG_ERROR
