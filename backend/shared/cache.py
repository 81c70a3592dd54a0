"""Read-through cache for registry lists.

Fresh entries expire after ``ttl``. The last value loaded for each key is
also kept in a bounded LRU and answers reads while storage is failing.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from cachetools import LRUCache, TTLCache  # type: ignore[import-untyped]

from shared.errors import StorageError

logger = logging.getLogger(__name__)


class ReadThroughCache:
    def __init__(self, maxsize: int = 128, ttl: float = 60.0):
        self.fresh: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self.last_known: LRUCache = LRUCache(maxsize=maxsize)

    async def get_or_load(self, key: str, load: Callable[[], Awaitable[Any]]) -> Any:
        """Return the fresh value for *key*, loading it on a miss.

        A load that raises StorageError falls back to the last known value,
        or re-raises when there is none.
        """
        if key in self.fresh:
            return self.fresh[key]
        try:
            value = await load()
        except StorageError as e:
            if key not in self.last_known:
                raise
            logger.warning(f"Serving last known {key} ({e})")
            return self.last_known[key]
        self.fresh[key] = value
        self.last_known[key] = value
        return value

    def invalidate(self, key: str) -> None:
        """Force the next read to load; the last known value is kept."""
        self.fresh.pop(key, None)

    def clear(self) -> None:
        self.fresh.clear()
        self.last_known.clear()


def read_through(cache: ReadThroughCache, key_func: Callable[..., str]):
    """Route an async read through *cache*, keyed by ``key_func(*args)``."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = key_func(*args, **kwargs)
            return await cache.get_or_load(key, lambda: func(*args, **kwargs))

        wrapper.cache = cache  # type: ignore[attr-defined]
        return wrapper

    return decorator
