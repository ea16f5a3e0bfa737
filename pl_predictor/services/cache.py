import logging
import threading
from typing import Callable, Hashable, List, TypeVar

from cachetools import TTLCache

from ..config import CACHE_MAX_ENTRIES, CACHE_TTL_SECONDS

logger = logging.getLogger(__name__)

T = TypeVar("T")

_registry: List["QueryCache"] = []


class QueryCache:
    """
    TTL cache for read-service query results, keyed by query parameters.

    Values must be plain data (dicts, lists, pydantic models), never ORM
    instances bound to a session.
    """

    def __init__(self, name: str, ttl: int = CACHE_TTL_SECONDS, maxsize: int = CACHE_MAX_ENTRIES):
        self.name = name
        self._cache: TTLCache = TTLCache(maxsize=maxsize, ttl=ttl)
        self._lock = threading.RLock()
        _registry.append(self)

    def get_or_load(self, key: Hashable, loader: Callable[[], T]) -> T:
        with self._lock:
            if key in self._cache:
                return self._cache[key]

        value = loader()
        with self._lock:
            self._cache[key] = value
        return value

    def invalidate(self) -> None:
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)


def clear_all_caches() -> None:
    for cache in _registry:
        cache.invalidate()
    logger.debug("Cleared %d read cache(s)", len(_registry))
