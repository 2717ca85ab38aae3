"""Time utilities for the virtual clock and record stamps.

UTC discipline: every instant handled by the core is a timezone-aware UTC
datetime. Calendar components are only read after localizing (see
``rollups.time_windows.to_local``).
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

__all__ = [
    "MINUTE_MS",
    "format_js_iso8601",
    "format_utc_iso8601",
    "from_epoch_ms",
    "get_current_utc",
    "normalize_to_minute",
    "parse_utc_iso8601",
    "to_epoch_ms",
]

MINUTE_MS = 60000

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def get_current_utc() -> datetime:
    """Get current time in UTC.

    Returns
    -------
    datetime
        Current time in UTC with timezone info
    """
    return datetime.now(timezone.utc)


def _as_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def format_utc_iso8601(dt: datetime) -> str:
    """Format datetime as ISO-8601 UTC string.

    Naive datetimes are taken to be UTC.

    Example
    -------
    >>> format_utc_iso8601(datetime(2016, 2, 1, tzinfo=timezone.utc))
    '2016-02-01T00:00:00+00:00'
    """
    return _as_utc(dt).isoformat()


def format_js_iso8601(dt: datetime) -> str:
    """Format datetime the way ``Date.prototype.toJSON`` does.

    Record ``time`` fields use this shape so readers written against the
    existing series keep parsing them.

    Example
    -------
    >>> format_js_iso8601(datetime(2016, 2, 1, tzinfo=timezone.utc))
    '2016-02-01T00:00:00.000Z'
    """
    return _as_utc(dt).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_utc_iso8601(iso_string: str) -> datetime:
    """Parse ISO-8601 string to UTC datetime.

    Raises
    ------
    ValueError
        If string is not valid ISO-8601
    """
    # Handle 'Z' suffix (Zulu time = UTC)
    iso_string = iso_string.replace("Z", "+00:00")

    return _as_utc(datetime.fromisoformat(iso_string))


def to_epoch_ms(dt: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return (_as_utc(dt) - _EPOCH) // timedelta(milliseconds=1)


def from_epoch_ms(value: int | float | str) -> datetime:
    """UTC datetime for a millisecond epoch timestamp."""
    return _EPOCH + timedelta(milliseconds=int(value))


def normalize_to_minute(dt: datetime) -> datetime:
    """Drop seconds and sub-second precision, returning a UTC datetime."""
    return _as_utc(dt).replace(second=0, microsecond=0)
