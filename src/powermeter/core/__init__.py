"""Core types: records, time helpers and the calendar scheduler."""

from .records import MalformedRecordError, Sample, decode_record, encode_record
from .time import (
    MINUTE_MS,
    format_js_iso8601,
    format_utc_iso8601,
    from_epoch_ms,
    get_current_utc,
    normalize_to_minute,
    parse_utc_iso8601,
    to_epoch_ms,
)

__all__ = [
    "MINUTE_MS",
    "MalformedRecordError",
    "Sample",
    "decode_record",
    "encode_record",
    "format_js_iso8601",
    "format_utc_iso8601",
    "from_epoch_ms",
    "get_current_utc",
    "normalize_to_minute",
    "parse_utc_iso8601",
    "to_epoch_ms",
]
