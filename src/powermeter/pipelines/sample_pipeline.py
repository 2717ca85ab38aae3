"""Sample ingestion: the entry point for per-second meter readings."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..core.records import Sample
from ..observability.loguru_config import get_logger
from ..rollups.retention import RetentionEnforcer
from ..rollups.tiers import SAMPLE_SERIES

if TYPE_CHECKING:
    from ..rollups.tiers import TierRegistry
    from ..storage.series_store import SeriesStore

__all__ = ["SampleRecorder"]


class SampleRecorder:
    """Append validated samples to the ``seconds`` series.

    Every push is followed by a retention check so ``seconds`` never grows
    past its limit between rollups.
    """

    def __init__(self, store: SeriesStore, tiers: TierRegistry) -> None:
        self.store = store
        self.retention = RetentionEnforcer(store, tiers)
        self.recorded = 0
        self._log = get_logger("ingest")

    def record(self, sample: Sample | dict[str, Any]) -> Sample:
        """Store one sample.

        Parameters
        ----------
        sample
            A :class:`Sample` or its dict form

        Raises
        ------
        MalformedRecordError
            If a dict sample is missing fields
        StoreError
            If the store rejects the write
        """
        if not isinstance(sample, Sample):
            sample = Sample.from_dict(sample)

        self.store.push(SAMPLE_SERIES, sample.to_dict())
        self.retention.enforce(SAMPLE_SERIES)
        self.recorded += 1
        self._log.debug(f"sample pulses={sample.pulse_count} kWh={sample.kwh}")
        return sample
