"""Updater service: wire the scheduler to the rollup pipeline.

The scheduler thread only decides which tiers are due. Their aggregation
runs on a single worker thread, which keeps every store operation of a
tick (and of consecutive ticks) strictly ordered while the scheduler goes
straight back to arming the next minute.
"""

from __future__ import annotations

import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import TYPE_CHECKING

from ..core.scheduler import BOUNDARIES, CalendarScheduler
from ..observability.loguru_config import get_logger
from ..rollups.tiers import build_tiers
from ..storage.series_store import StoreError
from .rollup_pipeline import RollupPipeline, RollupPipelineConfig

if TYPE_CHECKING:
    from datetime import datetime

    from ..config.settings import Settings
    from ..rollups.tiers import TierRegistry
    from ..storage.series_store import SeriesStore
    from .rollup_pipeline import RollupPipelineResult

__all__ = [
    "MeterUpdater",
    "create_updater",
]


class MeterUpdater:
    """Run rollups for every minute boundary until stopped.

    Example:
        >>> updater = create_updater(store, settings)
        >>> updater.start()
        >>> exit_code = updater.run_forever()
    """

    def __init__(
        self,
        store: SeriesStore,
        tiers: TierRegistry,
        *,
        timezone: str = "UTC",
        error_policy: str = "degrade",
        start_time: datetime | None = None,
    ) -> None:
        # Fail at startup if the boundary table names an unknown tier
        tiers.validate(name for _, name in BOUNDARIES)

        self.store = store
        self.tiers = tiers
        self.pipeline = RollupPipeline(
            store,
            tiers,
            RollupPipelineConfig(timezone=timezone, error_policy=error_policy),
        )
        self.scheduler = CalendarScheduler(self.dispatch, timezone=timezone, start=start_time)
        self.fatal_error: BaseException | None = None

        self._executor: ThreadPoolExecutor | None = None
        self._stopped = threading.Event()
        self._log = get_logger("pipeline")

    def dispatch(self, tier_names: list[str], clock: datetime) -> Future[list[RollupPipelineResult]] | None:
        """Queue one tick's tiers on the worker thread."""
        if self.fatal_error is not None:
            self._log.warning(f"Skipping tick {clock.isoformat()} after fatal error")
            return None

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rollup")

        future = self._executor.submit(self.pipeline.run_tick, tier_names, clock)
        future.add_done_callback(self._on_tick_done)
        return future

    def _on_tick_done(self, future: Future[list[RollupPipelineResult]]) -> None:
        exc = future.exception()
        if exc is None:
            failed = [r.tier for r in future.result() if not r.success]
            if failed:
                self._log.warning(f"Tick finished with failed tiers: {', '.join(failed)}")
            return

        if self.pipeline.config.error_policy != "fail_fast" and not isinstance(exc, StoreError):
            self._log.opt(exception=exc).error(f"Tick failed, continuing with the next one: {exc}")
            return

        self.fatal_error = exc
        self._log.critical(f"Stopping updater after fatal error: {exc}")
        self._stopped.set()

    def start(self) -> MeterUpdater:
        """Start the scheduler thread."""
        self._stopped.clear()
        self.scheduler.start()
        self._log.info(f"Updater started, next tick after {self.scheduler.clock.isoformat()}")
        return self

    def stop(self, timeout: float = 5.0) -> None:
        """Stop scheduling and let queued aggregations finish."""
        self.scheduler.stop(timeout=timeout)
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self._stopped.set()
        self._log.info("Updater stopped")

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the updater stops. Returns False on timeout."""
        return self._stopped.wait(timeout)

    def run_forever(self) -> int:
        """Block until interrupted or a fatal error, then stop.

        Returns
        -------
        int
            0 on a clean stop, 1 after a fatal error
        """
        try:
            while not self.wait(timeout=1.0):
                pass
        except KeyboardInterrupt:
            self._log.info("Interrupted")
        finally:
            self.stop()

        return 1 if self.fatal_error is not None else 0

    def __enter__(self) -> MeterUpdater:
        return self.start()

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def create_updater(store: SeriesStore, settings: Settings) -> MeterUpdater:
    """Factory function to create an updater from settings."""
    return MeterUpdater(
        store,
        build_tiers(settings.retention_overrides),
        timezone=settings.timezone,
        error_policy=settings.error_policy,
        start_time=settings.start_time,
    )
