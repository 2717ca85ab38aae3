"""Aggregate statistics over a window of source records.

Pure functions: callers read the window from the store, these turn it into
the record appended to the next tier.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any

from ..core.records import MalformedRecordError, Sample
from ..core.time import format_js_iso8601, to_epoch_ms
from .tiers import series_field_name

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime

__all__ = [
    "PULSES_PER_KWH",
    "AggregateRecord",
    "aggregate_minute",
    "aggregate_window",
    "record_total",
]

# Meter constant: 10000 pulses per kWh
PULSES_PER_KWH = 10000


class AggregateRecord:
    """One record of a derived tier.

    Attributes
    ----------
    timestamp : int
        Epoch milliseconds of the boundary that produced the record
    time : str
        ISO-8601 form of ``timestamp``
    total : float
        Sum of pulses (``minutes``) or of source totals (higher tiers)
    kwh : float
        Energy over the window, rounded to 4 decimals
    fields : dict
        Tier-specific fields (``count``/``max``/... or ``per<Source>``)
    """

    def __init__(self, stamp: datetime, total: float, kwh: float, **fields: Any) -> None:
        self.timestamp = to_epoch_ms(stamp)
        self.time = format_js_iso8601(stamp)
        self.total = total
        self.kwh = kwh
        self.fields = fields

    def __getitem__(self, key: str) -> Any:
        return self.to_dict()[key]

    def __repr__(self) -> str:
        return f"AggregateRecord(time={self.time!r}, total={self.total!r}, kwh={self.kwh!r})"

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored JSON shape."""
        return {
            "timestamp": self.timestamp,
            "time": self.time,
            "total": self.total,
            "kwh": self.kwh,
            **self.fields,
        }


def aggregate_minute(samples: Sequence[Sample], stamp: datetime) -> AggregateRecord:
    """Summarize the per-second samples of one minute.

    An empty window (cold start) yields zeros rather than an error.

    Parameters
    ----------
    samples
        Samples read from ``seconds``, oldest first
    stamp
        Boundary instant the record is stamped with

    Returns
    -------
    AggregateRecord
        Record with ``count``, ``max``, ``min``, ``average`` and ``watts``
    """
    pulses = [s.pulse_count for s in samples]
    count = sum(pulses)
    average = count / len(pulses) if pulses else 0.0
    watts = average / PULSES_PER_KWH * 3600 * 1000

    return AggregateRecord(
        stamp,
        total=count,
        kwh=round(sum(s.kwh for s in samples), 4),
        count=count,
        max=max(pulses, default=0),
        min=min(pulses, default=0),
        average=round(average, 4),
        watts=round(watts),
    )


def record_total(record: dict[str, Any]) -> float:
    """The ``total`` of a decoded aggregate record.

    Raises
    ------
    MalformedRecordError
        If the record carries no numeric total
    """
    total = record.get("total")
    if isinstance(total, bool) or not isinstance(total, (int, float)):
        raise MalformedRecordError(f"Record has no numeric total: {total!r}")
    if isinstance(total, float) and not math.isfinite(total):
        raise MalformedRecordError(f"Record total must be finite, got: {total!r}")
    return total


def aggregate_window(totals: Sequence[float], source: str, stamp: datetime) -> AggregateRecord:
    """Sum the totals of a window of source-tier records.

    Parameters
    ----------
    totals
        ``total`` of each source record, oldest first
    source
        Name of the source series; decides the array field name
    stamp
        Boundary instant the record is stamped with

    Example
    -------
    >>> from datetime import datetime, timezone
    >>> rec = aggregate_window([1, 2, 3, 4, 5], "minutes", datetime(2016, 1, 1, tzinfo=timezone.utc))
    >>> rec["total"], rec["kwh"], rec["perMinute"]
    (15, 0.0015, [1, 2, 3, 4, 5])
    """
    total = sum(totals)

    return AggregateRecord(
        stamp,
        total=total,
        kwh=round(total / PULSES_PER_KWH, 4),
        **{series_field_name(source): list(totals)},
    )
