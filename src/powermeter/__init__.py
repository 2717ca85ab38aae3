"""Power meter rollups: calendar-scheduled aggregation of energy samples."""

__version__ = "2.0.0"
