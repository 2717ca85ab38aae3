"""Calendar scheduler driving the rollup tiers.

A virtual clock advances in exact one-minute steps aligned to wall-clock
minutes. On every step the scheduler works out which coarser boundaries
(five minutes, half hour, ..., year) were crossed and hands the matching
tier names, finest first, to a dispatch callable.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from ..observability.loguru_config import get_logger
from ..rollups.time_windows import get_timezone, to_local
from .time import MINUTE_MS, get_current_utc, normalize_to_minute

if TYPE_CHECKING:
    from collections.abc import Callable

__all__ = [
    "BOUNDARIES",
    "CalendarScheduler",
    "create_scheduler",
    "every_five_minutes",
    "every_half_hour",
    "every_hour",
    "every_midnight",
    "every_minute",
    "every_month",
    "every_six_hours",
    "every_week",
    "every_year",
]

# Boundary predicates. Each takes the virtual clock in local time and is
# only true when all coarser-grained prerequisites are true as well.


def every_minute(local: datetime) -> bool:
    return True


def every_five_minutes(local: datetime) -> bool:
    return local.minute % 5 == 0


def every_half_hour(local: datetime) -> bool:
    return local.minute % 30 == 0


def every_hour(local: datetime) -> bool:
    return local.minute == 0


def every_six_hours(local: datetime) -> bool:
    return every_hour(local) and local.hour % 6 == 0


def every_midnight(local: datetime) -> bool:
    return every_six_hours(local) and local.hour == 0


def every_week(local: datetime) -> bool:
    # Weeks end on Sunday midnight
    return every_midnight(local) and local.weekday() == 6


def every_month(local: datetime) -> bool:
    return every_midnight(local) and local.day == 1


def every_year(local: datetime) -> bool:
    return every_month(local) and local.month == 1


BOUNDARIES: tuple[tuple[Callable[[datetime], bool], str], ...] = (
    (every_minute, "minutes"),
    (every_five_minutes, "fiveMinutes"),
    (every_half_hour, "halfHours"),
    (every_hour, "hours"),
    (every_six_hours, "sixHours"),
    (every_midnight, "days"),
    (every_week, "weeks"),
    (every_month, "months"),
    (every_year, "years"),
)


class CalendarScheduler:
    """Minute-step scheduler with a self-correcting virtual clock.

    The clock is held in UTC. Predicates read it in ``timezone`` so that
    days, weeks and months follow local midnight.

    Example:
        >>> def dispatch(tiers, clock):
        ...     print(clock, tiers)
        >>> scheduler = CalendarScheduler(dispatch, timezone="Europe/Oslo")
        >>> scheduler.start()
        >>> # ... later ...
        >>> scheduler.stop()
    """

    def __init__(
        self,
        dispatch: Callable[[list[str], datetime], Any],
        *,
        timezone: str = "UTC",
        start: datetime | None = None,
        wall_clock: Callable[[], datetime] = get_current_utc,
        boundaries: tuple[tuple[Callable[[datetime], bool], str], ...] = BOUNDARIES,
    ) -> None:
        """Initialize scheduler.

        Parameters
        ----------
        dispatch
            Called with the due tier names and the clock at every tick.
            Must return quickly; the next tick is armed right after it.
        timezone
            Timezone whose calendar defines the boundaries
        start
            Initial clock value (default: wall-clock now). The first tick
            fires at the minute following it.
        wall_clock
            Source of the current UTC time
        boundaries
            Ordered ``(predicate, tier name)`` pairs
        """
        get_timezone(timezone)

        self.dispatch = dispatch
        self.timezone = timezone
        self.boundaries = boundaries
        self._wall_clock = wall_clock
        self._clock = normalize_to_minute(start or wall_clock())
        self._log = get_logger("scheduler")

        self._running = False
        self._thread: threading.Thread | None = None
        self._stop_event = threading.Event()
        self.tick_count = 0
        self.error_count = 0

    @property
    def clock(self) -> datetime:
        """Current virtual clock value (UTC)."""
        return self._clock

    @property
    def local_clock(self) -> datetime:
        """Current virtual clock value in the scheduler's timezone."""
        return to_local(self._clock, self.timezone)

    def set_clock(self, value: datetime) -> CalendarScheduler:
        """Set the virtual clock, e.g. to replay a known date.

        Raises
        ------
        TypeError
            If ``value`` is not a datetime
        """
        if not isinstance(value, datetime):
            raise TypeError(f"Clock must be a datetime, got: {type(value).__name__}")

        self._clock = normalize_to_minute(value)
        self._log.info(f"Setting internal time to: {self._clock.isoformat()}")
        return self

    def advance(self) -> datetime:
        """Move the clock forward by exactly one minute."""
        self._clock = normalize_to_minute(self._clock) + timedelta(milliseconds=MINUTE_MS)
        return self._clock

    def timeout_length(self) -> int:
        """Advance the clock and return milliseconds until it is reached.

        A late wake-up gives a negative difference; one minute is added so
        the next tick is still in the future. A delay longer than one
        minute loses that tick.
        """
        target = self.advance()
        timeout = (target - self._wall_clock()) // timedelta(milliseconds=1)

        if timeout < 0:
            timeout += MINUTE_MS
        return timeout

    def boundaries_at(self, clock: datetime) -> list[str]:
        """Tier names whose boundary is crossed at ``clock``, finest first."""
        local = to_local(clock, self.timezone)
        return [tier for predicate, tier in self.boundaries if predicate(local)]

    def due_tiers(self) -> list[str]:
        """Tier names due at the current clock."""
        return self.boundaries_at(self._clock)

    def tick(self) -> list[str]:
        """Dispatch the tiers due at the current clock.

        Returns
        -------
        list[str]
            Tier names that were dispatched
        """
        tiers = self.due_tiers()
        self.tick_count += 1
        self._log.debug(f"Tick {self._clock.isoformat()}: {', '.join(tiers)}")
        self.dispatch(tiers, self._clock)
        return tiers

    def start(self) -> None:
        """Start scheduler thread."""
        if self._running:
            return

        self._running = True
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run_loop, name="calendar-scheduler", daemon=True)
        self._thread.start()

        self._log.info("Scheduler started", timezone=self.timezone)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop scheduler thread.

        Parameters
        ----------
        timeout
            Maximum time to wait for thread to stop
        """
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._thread and self._thread is not threading.current_thread():
            self._thread.join(timeout=timeout)
        self._thread = None

        self._log.info("Scheduler stopped")

    def _run_loop(self) -> None:
        """Main scheduler loop."""
        while self._running:
            timeout_ms = self.timeout_length()

            # Interruptible sleep until the next minute
            if self._stop_event.wait(timeout=timeout_ms / 1000):
                break

            try:
                self.tick()
            except Exception as exc:
                self.error_count += 1
                self._log.exception(f"Scheduler tick error: {exc}")

    def is_running(self) -> bool:
        return self._running

    def __enter__(self) -> CalendarScheduler:
        """Context manager entry."""
        self.start()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Context manager exit."""
        self.stop()


def create_scheduler(
    dispatch: Callable[[list[str], datetime], Any],
    *,
    timezone: str = "UTC",
    start: datetime | None = None,
) -> CalendarScheduler:
    """Factory function to create scheduler."""
    return CalendarScheduler(dispatch, timezone=timezone, start=start)
