"""Redis-backed series store.

Each series is a Redis list holding JSON strings, the layout readers of the
existing power meter database expect. Replies are left as raw bytes so a
value that is not valid UTF-8 reaches ``decode_record`` and is skipped on its
own instead of failing the whole ``range``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import redis

from ..core.records import encode_record
from ..observability.loguru_config import get_logger
from .series_store import StoreError

if TYPE_CHECKING:
    from ..config.settings import Settings

__all__ = [
    "RedisSeriesStore",
    "create_redis_store",
]

log = get_logger("store")


class RedisSeriesStore:
    """Series store over a ``redis.Redis`` client.

    Every Redis error is re-raised as :class:`StoreError` so callers handle
    one exception type regardless of backend.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    def _call(self, operation: str, series: str, *args: Any) -> Any:
        try:
            return getattr(self.client, operation)(series, *args)
        except redis.exceptions.RedisError as exc:
            log.error(f"Redis {operation} on {series} failed: {exc}")
            raise StoreError(f"{operation} {series}: {exc}", operation=operation, series=series) from exc

    def push(self, series: str, record: dict[str, Any] | str) -> int:
        return int(self._call("rpush", series, encode_record(record)))

    def range(self, series: str, start: int, end: int) -> list[Any]:
        return list(self._call("lrange", series, start, end))

    def trim(self, series: str, start: int, end: int = -1) -> None:
        self._call("ltrim", series, start, end)

    def length(self, series: str) -> int:
        return int(self._call("llen", series))

    def ping(self) -> bool:
        """Check connectivity.

        Raises
        ------
        StoreError
            If the server cannot be reached
        """
        try:
            return bool(self.client.ping())
        except redis.exceptions.RedisError as exc:
            raise StoreError(f"Redis unreachable: {exc}", operation="ping") from exc


def create_redis_store(settings: Settings) -> RedisSeriesStore:
    """Factory function to create a Redis store from settings."""
    client = redis.Redis(
        host=settings.redis_host,
        port=settings.redis_port,
        db=settings.redis_db,
        password=settings.redis_password,
        socket_timeout=10.0,
    )
    log.info(f"Using Redis at {settings.redis_url}")
    return RedisSeriesStore(client)
