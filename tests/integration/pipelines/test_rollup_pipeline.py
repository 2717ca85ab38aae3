"""Integration tests for the rollup cascade over an in-memory store."""

import json

import pytest
from conftest import FlakyStore, sample, utc

from powermeter.config.settings import ConfigError
from powermeter.core.scheduler import CalendarScheduler
from powermeter.pipelines import RollupPipelineConfig, create_rollup_pipeline
from powermeter.rollups import UnknownTierError
from powermeter.storage import MemorySeriesStore, StoreError

NEW_YEAR = utc(2016, 1, 1, 0, 0)


def due(clock, timezone="UTC"):
    return CalendarScheduler(lambda tiers, clock: None, timezone=timezone, start=clock).due_tiers()


def read(store, series):
    return [json.loads(v) for v in store.range(series, 0, -1)]


@pytest.fixture
def new_year_store():
    """A store one minute short of the 2016 new year boundary."""
    return MemorySeriesStore(
        {
            "seconds": [sample(pulses=10) for _ in range(60)],
            "minutes": [{"total": 600}] * 59,
            "hours": [{"total": 1000}] * 23,
            "days": [{"total": 100}] * 30,
            "months": [{"total": 10}] * 11,
        }
    )


class TestCascade:
    def test_new_year_cascade(self, new_year_store):
        pipeline = create_rollup_pipeline(new_year_store)
        tiers = due(NEW_YEAR)

        results = pipeline.run_tick(tiers, NEW_YEAR)

        assert [r.tier for r in results] == tiers
        assert "weeks" not in tiers
        assert all(r.success for r in results)

        by_tier = {r.tier: r.record for r in results}
        assert by_tier["minutes"]["count"] == 600
        assert by_tier["fiveMinutes"]["total"] == 3000
        assert by_tier["halfHours"]["total"] == 18000
        assert by_tier["hours"]["total"] == 36000
        assert by_tier["hours"]["perMinute"] == [600] * 60
        assert by_tier["sixHours"]["total"] == 41000
        assert by_tier["days"]["total"] == 59000
        assert by_tier["months"]["total"] == 62000
        assert by_tier["years"]["total"] == 62110
        assert by_tier["years"]["kwh"] == 6.211

    def test_months_window_is_previous_month(self, new_year_store):
        results = create_rollup_pipeline(new_year_store).run_tick(due(NEW_YEAR), NEW_YEAR)

        months = next(r for r in results if r.tier == "months")
        assert months.window_length == 31
        assert months.records_read == 31

    def test_records_are_appended_and_stamped(self, new_year_store):
        create_rollup_pipeline(new_year_store).run_tick(due(NEW_YEAR), NEW_YEAR)

        last = read(new_year_store, "years")[-1]
        assert last["timestamp"] == 1451606400000
        assert last["time"] == "2016-01-01T00:00:00.000Z"
        assert new_year_store.length("minutes") == 60
        assert new_year_store.length("years") == 1

    def test_cold_start(self):
        store = MemorySeriesStore()

        results = create_rollup_pipeline(store).run_tick(due(NEW_YEAR), NEW_YEAR)

        assert all(r.success for r in results)
        assert read(store, "minutes") == [
            {
                "timestamp": 1451606400000,
                "time": "2016-01-01T00:00:00.000Z",
                "total": 0,
                "kwh": 0,
                "count": 0,
                "max": 0,
                "min": 0,
                "average": 0,
                "watts": 0,
            }
        ]
        assert read(store, "years")[0]["perMonth"] == [0]


class TestMonthWindow:
    @pytest.mark.parametrize(
        "clock, expected",
        [
            (utc(2016, 2, 1), 31),
            (utc(2016, 3, 1), 29),
            (utc(2015, 3, 1), 28),
            (utc(2016, 5, 1), 30),
        ],
    )
    def test_window_tracks_month_that_ended(self, clock, expected):
        store = MemorySeriesStore({"days": [{"total": 1}] * 40})

        result = create_rollup_pipeline(store).handle_tier("months", clock)

        assert result.window_length == expected
        assert result.record["total"] == expected

    def test_local_timezone(self):
        store = MemorySeriesStore({"days": [{"total": 1}] * 40})
        pipeline = create_rollup_pipeline(store, timezone="Europe/Oslo")

        # 2016-03-01 00:00 in Oslo
        result = pipeline.handle_tier("months", utc(2016, 2, 29, 23, 0))

        assert result.window_length == 29


class TestMalformedRecords:
    def test_malformed_sample_is_skipped(self):
        store = MemorySeriesStore({"seconds": ["garbage"] + [sample(pulses=10) for _ in range(59)]})

        result = create_rollup_pipeline(store).handle_tier("minutes", NEW_YEAR)

        assert result.success
        assert result.records_read == 59
        assert result.records_skipped == 1
        assert result.record["count"] == 590

    @pytest.mark.parametrize(
        "bad",
        [
            '{"timestamp":1454284800000,"pulseCount":NaN,"kWh":0.001,"watt":3600}',
            '{"timestamp":1e999,"pulseCount":10,"kWh":0.001,"watt":3600}',
        ],
    )
    def test_non_finite_sample_is_skipped(self, bad):
        store = MemorySeriesStore({"seconds": [bad] + [sample(pulses=10) for _ in range(59)]})

        result = create_rollup_pipeline(store).handle_tier("minutes", NEW_YEAR)

        assert result.success
        assert result.records_skipped == 1
        assert result.record["count"] == 590

    def test_non_finite_total_is_skipped(self):
        store = MemorySeriesStore({"minutes": ['{"total":NaN}'] + [{"total": 3}] * 4})

        result = create_rollup_pipeline(store).handle_tier("fiveMinutes", NEW_YEAR)

        assert result.records_skipped == 1
        assert result.record["total"] == 12

    def test_record_without_total_is_skipped(self):
        store = MemorySeriesStore({"minutes": [{"total": 5}, {"kwh": 1}, {"total": 7}, {"total": 1}, {"total": 2}]})

        result = create_rollup_pipeline(store).handle_tier("fiveMinutes", NEW_YEAR)

        assert result.records_skipped == 1
        assert result.record["perMinute"] == [5, 7, 1, 2]
        assert result.record["total"] == 15


class TestErrorPolicy:
    def test_degrade_keeps_other_tiers(self):
        store = FlakyStore(fail_on={"fiveMinutes"})
        store.push("seconds", sample())

        results = create_rollup_pipeline(store).run_tick(["minutes", "fiveMinutes", "halfHours"], NEW_YEAR)

        assert [r.success for r in results] == [True, False, True]
        assert "fiveMinutes" in results[1].errors[0]
        assert store.length("fiveMinutes") == 0
        assert store.length("halfHours") == 1

    def test_fail_fast_raises(self):
        store = FlakyStore(fail_on={"fiveMinutes"})
        pipeline = create_rollup_pipeline(store, error_policy="fail_fast")

        with pytest.raises(StoreError):
            pipeline.run_tick(["minutes", "fiveMinutes", "halfHours"], NEW_YEAR)

        assert store.length("minutes") == 1
        assert store.length("halfHours") == 0

    def test_unknown_policy(self):
        with pytest.raises(ConfigError):
            RollupPipelineConfig(error_policy="ignore")


class TestRetention:
    def test_override_bounds_series(self):
        store = MemorySeriesStore({"fiveMinutes": [{"total": 1}, {"total": 2}]})
        pipeline = create_rollup_pipeline(store, retention_overrides={"fiveMinutes": 2})

        result = pipeline.handle_tier("fiveMinutes", NEW_YEAR)

        assert result.trimmed
        assert store.length("fiveMinutes") == 2
        assert read(store, "fiveMinutes")[0] == {"total": 2}

    def test_default_limit_not_reached(self, new_year_store):
        result = create_rollup_pipeline(new_year_store).handle_tier("minutes", NEW_YEAR)

        assert not result.trimmed


class TestTierNames:
    def test_unknown_tier(self):
        with pytest.raises(UnknownTierError):
            create_rollup_pipeline(MemorySeriesStore()).run_tick(["decades"], NEW_YEAR)

    def test_seconds_has_no_rollup(self):
        with pytest.raises(ConfigError, match="seconds"):
            create_rollup_pipeline(MemorySeriesStore()).handle_tier("seconds", NEW_YEAR)
