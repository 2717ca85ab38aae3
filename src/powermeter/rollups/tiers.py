"""Rollup tier configuration.

Each tier names the series it writes, the series it reads from, how many
of the most recent source records one aggregation consumes, and how many
records its own series keeps.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from ..config.settings import ConfigError
from .time_windows import MAX_MONTH_DAYS, month_window_length

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from datetime import datetime

__all__ = [
    "DEFAULT_TIERS",
    "SAMPLE_SERIES",
    "SERIES_NAMES",
    "Tier",
    "TierRegistry",
    "UnknownTierError",
    "build_tiers",
    "series_field_name",
]

SAMPLE_SERIES = "seconds"


class UnknownTierError(ConfigError):
    """Raised when a tier or series name is not configured."""

    pass


@dataclass(frozen=True)
class Tier:
    """One rollup granularity.

    Attributes
    ----------
    name : str
        Series written by this tier
    source : str | None
        Series read by this tier (None for the externally fed sample series)
    window_length : int | None
        Number of most recent source records per aggregation. None means
        the length follows the calendar (``months``).
    retention_limit : int
        Maximum number of records kept in the tier's series
    """

    name: str
    source: str | None
    window_length: int | None
    retention_limit: int

    @property
    def max_window(self) -> int:
        """Largest window this tier can read, in source records."""
        if self.window_length is not None:
            return self.window_length
        return MAX_MONTH_DAYS

    def window_at(self, clock: datetime) -> int:
        """Window length for an aggregation triggered at ``clock`` (local time)."""
        if self.window_length is not None:
            return self.window_length
        return month_window_length(clock)


DEFAULT_TIERS: tuple[Tier, ...] = (
    Tier(SAMPLE_SERIES, None, None, 90000),  # 25 hours of seconds
    Tier("minutes", SAMPLE_SERIES, 60, 1560),  # 24 + 2 hours
    Tier("fiveMinutes", "minutes", 5, 2304),  # 7 + 1 days
    Tier("halfHours", "minutes", 30, 1536),  # 31 + 1 days
    Tier("hours", "minutes", 60, 768),  # 31 + 1 days
    Tier("sixHours", "hours", 6, 2200),  # 365 + 5 days
    Tier("days", "hours", 24, 800),
    Tier("weeks", "days", 7, 530),
    Tier("months", "days", None, 240),
    Tier("years", "months", 12, 50),
)

SERIES_NAMES: tuple[str, ...] = tuple(t.name for t in DEFAULT_TIERS)


def series_field_name(source: str) -> str:
    """Name of the array field holding per-source-record totals.

    Examples
    --------
    >>> series_field_name("minutes"), series_field_name("fiveMinutes")
    ('perMinute', 'perFiveMinute')
    """
    return "per" + source[:1].upper() + source[1:-1]


class TierRegistry:
    """Lookup of configured tiers in dependency order."""

    def __init__(self, tiers: Iterable[Tier] = DEFAULT_TIERS) -> None:
        self._tiers: dict[str, Tier] = {}
        for tier in tiers:
            if tier.name in self._tiers:
                raise ConfigError(f"Duplicate tier: {tier.name}")
            self._tiers[tier.name] = tier
        self.validate()

    def __iter__(self):
        return iter(self._tiers.values())

    def __len__(self) -> int:
        return len(self._tiers)

    def __contains__(self, name: object) -> bool:
        return name in self._tiers

    def get(self, name: str) -> Tier:
        """Get tier by series name.

        Raises
        ------
        UnknownTierError
            If no tier is configured under ``name``
        """
        try:
            return self._tiers[name]
        except KeyError:
            raise UnknownTierError(f"Unknown tier: {name!r}") from None

    def derived(self) -> list[Tier]:
        """Tiers computed by the rollup pipeline (everything with a source)."""
        return [t for t in self._tiers.values() if t.source is not None]

    def validate(self, names: Iterable[str] = ()) -> None:
        """Check the tier graph, and that every name in ``names`` is known.

        A source must be declared before the tiers reading from it, windows
        and retention limits must be positive, and a tier must keep at least
        one full window of its own source.

        Raises
        ------
        ConfigError
            On the first violation found
        """
        seen: set[str] = set()
        for tier in self._tiers.values():
            if tier.retention_limit <= 0:
                raise ConfigError(f"Retention limit for {tier.name} must be positive")
            if tier.source is not None:
                if tier.source not in seen:
                    raise ConfigError(f"Tier {tier.name} reads from {tier.source}, which is not declared before it")
                if tier.window_length is not None and tier.window_length <= 0:
                    raise ConfigError(f"Window length for {tier.name} must be positive")
                source = self._tiers[tier.source]
                if source.retention_limit < tier.max_window:
                    raise ConfigError(
                        f"{tier.source} keeps {source.retention_limit} records, "
                        f"fewer than the {tier.max_window} {tier.name} reads"
                    )
            seen.add(tier.name)

        for name in names:
            self.get(name)


def build_tiers(retention_overrides: Mapping[str, int] | None = None) -> TierRegistry:
    """Default tiers with retention limits replaced from configuration.

    Raises
    ------
    UnknownTierError
        If an override names a series that does not exist
    """
    overrides = dict(retention_overrides or {})
    unknown = sorted(set(overrides) - set(SERIES_NAMES))
    if unknown:
        raise UnknownTierError(f"Unknown series in retention overrides: {', '.join(unknown)}")

    return TierRegistry(
        replace(tier, retention_limit=overrides[tier.name]) if tier.name in overrides else tier
        for tier in DEFAULT_TIERS
    )
