"""Tier configuration, calendar math, aggregation and retention."""

from .aggregator import AggregateRecord, aggregate_minute, aggregate_window
from .retention import RetentionEnforcer
from .tiers import DEFAULT_TIERS, SERIES_NAMES, Tier, TierRegistry, UnknownTierError, build_tiers, series_field_name
from .time_windows import days_in_february, days_in_month, is_leap_year, month_window_length, to_local

__all__ = [
    # Tiers
    "DEFAULT_TIERS",
    "SERIES_NAMES",
    "Tier",
    "TierRegistry",
    "UnknownTierError",
    "build_tiers",
    "series_field_name",
    # Calendar
    "days_in_february",
    "days_in_month",
    "is_leap_year",
    "month_window_length",
    "to_local",
    # Aggregation
    "AggregateRecord",
    "aggregate_minute",
    "aggregate_window",
    "RetentionEnforcer",
]
