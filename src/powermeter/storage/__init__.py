"""Time series storage backends."""

from .redis_store import RedisSeriesStore, create_redis_store
from .series_store import MemorySeriesStore, SeriesStore, StoreError

__all__ = [
    "MemorySeriesStore",
    "RedisSeriesStore",
    "SeriesStore",
    "StoreError",
    "create_redis_store",
]
