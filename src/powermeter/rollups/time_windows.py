"""Calendar math for rollup windows.

Boundaries are evaluated on local calendar components while the virtual
clock itself is kept in UTC, so DST shifts never make the clock skip or
repeat a minute.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytz

__all__ = [
    "MAX_MONTH_DAYS",
    "days_in_february",
    "days_in_month",
    "get_timezone",
    "is_leap_year",
    "month_window_length",
    "to_local",
]

_THIRTY_DAY_MONTHS = frozenset({4, 6, 9, 11})

MAX_MONTH_DAYS = 31


def get_timezone(timezone_str: str = "UTC") -> pytz.BaseTzInfo:
    """Resolve a timezone name.

    Raises
    ------
    pytz.UnknownTimeZoneError
        If the name is not in the tz database
    """
    return pytz.timezone(timezone_str)


def to_local(utc_dt: datetime, timezone_str: str = "UTC") -> datetime:
    """Convert a UTC instant to local wall time in ``timezone_str``."""
    if utc_dt.tzinfo is None:
        utc_dt = utc_dt.replace(tzinfo=timezone.utc)
    return utc_dt.astimezone(get_timezone(timezone_str))


def is_leap_year(year: int) -> bool:
    """Gregorian leap year rule.

    Examples
    --------
    >>> is_leap_year(2016), is_leap_year(1900), is_leap_year(2000)
    (True, False, True)
    """
    if year % 4 == 0 and year % 100 != 0:
        return True
    return year % 400 == 0


def days_in_february(year: int) -> int:
    return 29 if is_leap_year(year) else 28


def days_in_month(year: int, month: int) -> int:
    """Number of days in ``month`` (1-12) of ``year``.

    Raises
    ------
    ValueError
        If month is outside 1-12
    """
    if not 1 <= month <= 12:
        raise ValueError(f"Month must be in 1..12, got: {month}")

    if month == 2:
        return days_in_february(year)
    if month in _THIRTY_DAY_MONTHS:
        return 30
    return 31


def month_window_length(clock: datetime) -> int:
    """Window length of the ``months`` tier at ``clock``.

    The ``months`` boundary fires at local midnight of the 1st with the
    clock already in the new month. The window must cover the month that
    just elapsed, so the clock is stepped back one second before reading
    month and year.

    Parameters
    ----------
    clock
        Virtual clock value, already localized

    Returns
    -------
    int
        Days in the elapsed month (28-31)

    Examples
    --------
    >>> month_window_length(datetime(2016, 3, 1))
    29
    >>> month_window_length(datetime(2016, 2, 1))
    31
    """
    elapsed = clock - timedelta(seconds=1)
    return days_in_month(elapsed.year, elapsed.month)
