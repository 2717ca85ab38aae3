"""Append-only list storage for time series.

The store contract mirrors Redis list commands: ``push`` appends to the
tail, ``range`` and ``trim`` take inclusive indices where negative values
count from the end (``-1`` is the last element).
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from ..core.records import encode_record

if TYPE_CHECKING:
    from collections.abc import Iterable

__all__ = [
    "MemorySeriesStore",
    "SeriesStore",
    "StoreError",
]


class StoreError(Exception):
    """Raised when a store operation fails (connection loss, timeout, ...)."""

    def __init__(self, message: str, *, operation: str | None = None, series: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.series = series


@runtime_checkable
class SeriesStore(Protocol):
    """Storage collaborator consumed by the rollup core."""

    def push(self, series: str, record: dict[str, Any] | str) -> int:
        """Append a record to the tail, returning the new length."""
        ...

    def range(self, series: str, start: int, end: int) -> list[Any]:
        """Raw stored values between ``start`` and ``end`` inclusive."""
        ...

    def trim(self, series: str, start: int, end: int = -1) -> None:
        """Keep only the values between ``start`` and ``end`` inclusive."""
        ...

    def length(self, series: str) -> int:
        """Number of values in the series."""
        ...


def _resolve_span(size: int, start: int, end: int) -> tuple[int, int] | None:
    if start < 0:
        start = max(size + start, 0)
    if end < 0:
        end = size + end
    end = min(end, size - 1)
    if start > end:
        return None
    return start, end


class MemorySeriesStore:
    """In-process store keeping serialized records in Python lists.

    Operations on one store are serialized with a lock, matching the
    per-key atomicity a Redis server gives.

    Example:
        >>> store = MemorySeriesStore()
        >>> store.push("minutes", {"total": 5})
        1
        >>> store.range("minutes", -1, -1)
        ['{"total":5}']
    """

    def __init__(self, initial: dict[str, Iterable[dict[str, Any] | str]] | None = None) -> None:
        self._series: dict[str, list[str]] = {}
        self._lock = threading.Lock()

        for name, records in (initial or {}).items():
            self._series[name] = [encode_record(r) for r in records]

    def push(self, series: str, record: dict[str, Any] | str) -> int:
        value = encode_record(record)
        with self._lock:
            values = self._series.setdefault(series, [])
            values.append(value)
            return len(values)

    def range(self, series: str, start: int, end: int) -> list[str]:
        with self._lock:
            values = self._series.get(series, [])
            span = _resolve_span(len(values), start, end)
            if span is None:
                return []
            return values[span[0] : span[1] + 1]

    def trim(self, series: str, start: int, end: int = -1) -> None:
        with self._lock:
            values = self._series.get(series)
            if values is None:
                return
            span = _resolve_span(len(values), start, end)
            if span is None:
                del self._series[series]
            else:
                self._series[series] = values[span[0] : span[1] + 1]

    def length(self, series: str) -> int:
        with self._lock:
            return len(self._series.get(series, []))

    def ping(self) -> bool:
        return True

    def series_names(self) -> list[str]:
        """Names of all non-empty series."""
        with self._lock:
            return sorted(self._series)
