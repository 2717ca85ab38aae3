"""Retention enforcement for bounded series."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..observability.loguru_config import get_logger

if TYPE_CHECKING:
    from ..storage.series_store import SeriesStore
    from .tiers import TierRegistry

__all__ = ["RetentionEnforcer"]

log = get_logger("store")


class RetentionEnforcer:
    """Trim series back to their tier's retention limit, oldest first."""

    def __init__(self, store: SeriesStore, tiers: TierRegistry) -> None:
        self.store = store
        self.tiers = tiers

    def enforce(self, series: str) -> bool:
        """Trim ``series`` if it holds more than its retention limit.

        Returns
        -------
        bool
            True if records were dropped

        Raises
        ------
        UnknownTierError
            If ``series`` is not a configured tier
        StoreError
            If the store cannot be read or trimmed
        """
        limit = self.tiers.get(series).retention_limit
        length = self.store.length(series)

        if length <= limit:
            log.debug(f"{series} within limit {limit}: length {length}")
            return False

        self.store.trim(series, length - limit, -1)
        log.info(f"{series} over limit {limit}: dropped {length - limit} oldest records")
        return True

    def enforce_all(self) -> dict[str, bool]:
        """Run :meth:`enforce` on every configured series."""
        return {tier.name: self.enforce(tier.name) for tier in self.tiers}
