"""Record types stored in the time series.

Series values are JSON objects. Samples land in ``seconds``; every other
series holds aggregate records produced by the rollup pipeline.
"""

from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any

__all__ = [
    "MalformedRecordError",
    "Sample",
    "decode_record",
    "encode_record",
]


class MalformedRecordError(ValueError):
    """Raised when a stored value cannot be decoded into a record."""

    pass


def _number(data: dict[str, Any], *keys: str) -> float:
    for key in keys:
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise MalformedRecordError(f"{key} must be a number, got: {value!r}")
            if isinstance(value, float) and not math.isfinite(value):
                raise MalformedRecordError(f"{key} must be finite, got: {value!r}")
            return value
    raise MalformedRecordError(f"Missing field: {keys[0]}")


@dataclass(frozen=True)
class Sample:
    """One per-second energy reading.

    Attributes
    ----------
    timestamp : int
        Epoch milliseconds of the reading
    pulse_count : int
        Meter pulses counted during the second
    kwh : float
        Energy for the second in kWh
    watt : float
        Instantaneous power estimate
    time : str | None
        ISO-8601 form of ``timestamp`` when the source supplies one
    """

    timestamp: int
    pulse_count: int
    kwh: float
    watt: float
    time: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Sample:
        """Build a sample from its stored form.

        ``kWhs`` is accepted in place of ``kWh`` for series written by
        older meters.

        Raises
        ------
        MalformedRecordError
            If a field is missing or has the wrong type
        """
        if not isinstance(data, dict):
            raise MalformedRecordError(f"Sample must be an object, got: {type(data).__name__}")

        pulse_count = _number(data, "pulseCount")
        if pulse_count != int(pulse_count) or pulse_count < 0:
            raise MalformedRecordError(f"pulseCount must be a non-negative integer, got: {pulse_count!r}")

        try:
            return cls(
                timestamp=int(_number(data, "timestamp")),
                pulse_count=int(pulse_count),
                kwh=float(_number(data, "kWh", "kWhs")),
                watt=float(_number(data, "watt")),
                time=data.get("time"),
            )
        except OverflowError as exc:
            raise MalformedRecordError(f"Sample value out of range: {exc}") from exc

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "pulseCount": self.pulse_count,
            "kWh": self.kwh,
            "watt": self.watt,
        }
        if self.time is not None:
            data["time"] = self.time
        return data


def encode_record(record: dict[str, Any] | str) -> str:
    """Serialize a record for storage. Strings are stored as given."""
    if isinstance(record, str):
        return record
    return json.dumps(record, separators=(",", ":"))


def decode_record(raw: str | bytes | dict[str, Any]) -> dict[str, Any]:
    """Deserialize one stored value.

    Raises
    ------
    MalformedRecordError
        If the value is not a JSON object
    """
    if isinstance(raw, dict):
        return raw

    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedRecordError(f"Record is not valid UTF-8: {exc}") from exc

    try:
        data = json.loads(raw)
    except (TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Record is not valid JSON: {exc}") from exc

    if not isinstance(data, dict):
        raise MalformedRecordError(f"Record must be a JSON object, got: {type(data).__name__}")

    return data
