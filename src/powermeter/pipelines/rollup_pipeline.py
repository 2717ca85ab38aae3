"""Rollup Pipeline: cascade aggregations from finer to coarser tiers.

For each tier due at a tick the pipeline reads the most recent window of
the tier's source series, aggregates it, appends the result and trims the
tier's series back to its retention limit. Tiers of one tick run strictly
in order so a coarser tier always reads the finer record appended for the
same boundary.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..config.settings import ERROR_POLICIES, ConfigError
from ..core.records import MalformedRecordError, Sample, decode_record
from ..observability.loguru_config import get_logger, timing_context
from ..rollups.aggregator import aggregate_minute, aggregate_window, record_total
from ..rollups.retention import RetentionEnforcer
from ..rollups.tiers import SAMPLE_SERIES, TierRegistry, build_tiers
from ..rollups.time_windows import to_local
from ..storage.series_store import StoreError

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime

    from ..rollups.aggregator import AggregateRecord
    from ..rollups.tiers import Tier
    from ..storage.series_store import SeriesStore

__all__ = [
    "RollupPipeline",
    "RollupPipelineConfig",
    "RollupPipelineResult",
    "create_rollup_pipeline",
]


@dataclass
class RollupPipelineConfig:
    """Configuration for rollup pipeline."""

    timezone: str = "UTC"
    error_policy: str = "degrade"

    def __post_init__(self) -> None:
        if self.error_policy not in ERROR_POLICIES:
            raise ConfigError(f"Unknown error policy: {self.error_policy!r}")


@dataclass
class RollupPipelineResult:
    """Result of one tier aggregation."""

    success: bool
    tier: str
    clock: datetime
    window_length: int
    records_read: int = 0
    records_skipped: int = 0
    record: dict[str, Any] | None = None
    trimmed: bool = False
    duration_ms: float = 0.0
    errors: list[str] = field(default_factory=list)


class RollupPipeline:
    """Aggregate tiers into the time series store.

    Example:
        >>> from powermeter.storage import MemorySeriesStore
        >>> pipeline = create_rollup_pipeline(MemorySeriesStore())
        >>> results = pipeline.run_tick(["minutes", "fiveMinutes"], clock)
    """

    def __init__(
        self,
        store: SeriesStore,
        tiers: TierRegistry,
        config: RollupPipelineConfig | None = None,
    ) -> None:
        """Initialize rollup pipeline.

        Parameters
        ----------
        store
            Time series store to read from and append to
        tiers
            Tier configuration
        config
            Pipeline configuration
        """
        self.store = store
        self.tiers = tiers
        self.config = config or RollupPipelineConfig()
        self.retention = RetentionEnforcer(store, tiers)
        self._log = get_logger("pipeline")

    def run_tick(self, tier_names: Iterable[str], clock: datetime) -> list[RollupPipelineResult]:
        """Aggregate each named tier in order.

        Parameters
        ----------
        tier_names
            Tiers due at this tick, finest first
        clock
            Virtual clock value of the tick

        Returns
        -------
        list[RollupPipelineResult]
            One result per tier

        Raises
        ------
        UnknownTierError
            If a name is not a configured tier
        StoreError
            Under the ``fail_fast`` policy, on the first store failure
        """
        return [self.handle_tier(name, clock) for name in tier_names]

    def handle_tier(self, tier_name: str, clock: datetime) -> RollupPipelineResult:
        """Compute, append and trim one tier's record for ``clock``."""
        tier = self.tiers.get(tier_name)
        if tier.source is None:
            raise ConfigError(f"{tier_name} is fed externally and has no rollup")

        window = tier.window_at(to_local(clock, self.config.timezone))
        result = RollupPipelineResult(success=False, tier=tier.name, clock=clock, window_length=window)
        start_time = time.perf_counter()

        try:
            with timing_context(f"rollup.{tier.name}", component="pipeline", window=window) as ctx:
                record = self.aggregate(tier, window, clock, result)
                self.store.push(tier.name, record.to_dict())
                result.trimmed = self.retention.enforce(tier.name)
                ctx["records_read"] = result.records_read

            result.record = record.to_dict()
            result.success = True
            self._log.info(f"{tier.name}: total={record.total} kwh={record.kwh} window={result.records_read}/{window}")

        except StoreError as exc:
            result.errors.append(str(exc))
            if self.config.error_policy == "fail_fast":
                self._log.critical(f"{tier.name} aggregation failed, giving up: {exc}")
                raise
            self._log.error(f"{tier.name} aggregation abandoned for {clock.isoformat()}: {exc}")

        finally:
            result.duration_ms = (time.perf_counter() - start_time) * 1000

        return result

    def aggregate(
        self,
        tier: Tier,
        window: int,
        clock: datetime,
        result: RollupPipelineResult | None = None,
    ) -> AggregateRecord:
        """Read the source window of ``tier`` and aggregate it.

        Malformed source values are skipped with a warning. A source
        holding fewer than ``window`` records is aggregated as is.
        """
        values = self.store.range(tier.source, -window, -1)
        skipped = 0

        if tier.source == SAMPLE_SERIES:
            samples = []
            for raw in values:
                try:
                    samples.append(Sample.from_dict(decode_record(raw)))
                except MalformedRecordError as exc:
                    skipped += 1
                    self._log.warning(f"Skipping malformed {tier.source} record: {exc}")
            record = aggregate_minute(samples, clock)
        else:
            totals = []
            for raw in values:
                try:
                    totals.append(record_total(decode_record(raw)))
                except MalformedRecordError as exc:
                    skipped += 1
                    self._log.warning(f"Skipping malformed {tier.source} record: {exc}")
            record = aggregate_window(totals, tier.source, clock)

        if result is not None:
            result.records_read = len(values) - skipped
            result.records_skipped = skipped

        return record


def create_rollup_pipeline(
    store: SeriesStore,
    *,
    tiers: TierRegistry | None = None,
    retention_overrides: dict[str, int] | None = None,
    **config_kwargs: Any,
) -> RollupPipeline:
    """Factory function to create rollup pipeline.

    Parameters
    ----------
    store
        Time series store
    tiers
        Tier configuration (default: built-in tiers with ``retention_overrides``)
    retention_overrides
        Per-series retention limits, ignored when ``tiers`` is given
    **config_kwargs
        Fields of :class:`RollupPipelineConfig`
    """
    if tiers is None:
        tiers = build_tiers(retention_overrides)

    return RollupPipeline(store, tiers, RollupPipelineConfig(**config_kwargs))
