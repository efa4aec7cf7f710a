"""Cache-first retrieval shared by the latest-rate and historical caches.

One algorithm, parameterized by store, TTL and a usability predicate:

    1. Unless forced, read the entry for the key. A read failure is a miss.
    2. Return the cached payload if it is within TTL and usable.
    3. Otherwise fetch (errors propagate), write best-effort, return.

The cache is an optimization only. A failed write is logged and the freshly
fetched payload is still returned.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from devise.data.store import CacheStore
from devise.logging import get_logger
from devise.models import CacheEntry

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class CacheStats:
    """Running counters for one cache manager."""

    hits: int = 0
    misses: int = 0
    fetches: int = 0
    read_errors: int = 0
    write_errors: int = 0


class RateCacheManager(Generic[T]):
    """Cache-or-fetch orchestration over a single CacheStore.

    Args:
        store: Persistence for this key space.
        ttl_seconds: Maximum entry age before it is refetched.
        is_usable: Extra check on an unexpired entry; False forces a fetch.
        clock: Time source in Unix seconds, injectable for tests.
    """

    def __init__(
        self,
        store: CacheStore[T],
        ttl_seconds: float,
        is_usable: Callable[[CacheEntry[T]], bool] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._store = store
        self._ttl_seconds = ttl_seconds
        self._is_usable = is_usable
        self._clock = clock
        self.stats = CacheStats()

    @property
    def store(self) -> CacheStore[T]:
        return self._store

    async def retrieve(
        self,
        cache_key: str,
        fetch: Callable[[], Awaitable[T]],
        force_refresh: bool = False,
        is_usable: Callable[[CacheEntry[T]], bool] | None = None,
    ) -> T:
        """Return a usable cached payload for ``cache_key`` or fetch a fresh one.

        ``is_usable`` overrides the manager-level predicate for this call.
        """
        if not force_refresh:
            entry = await self._read(cache_key)
            if entry is not None and self._accept(entry, is_usable or self._is_usable):
                self.stats.hits += 1
                logger.debug(
                    "cache_hit",
                    namespace=self._store.namespace,
                    key=cache_key,
                    age_seconds=round(entry.age(self._clock()), 1),
                )
                return entry.payload

        self.stats.misses += 1
        logger.info(
            "cache_miss_fetching",
            namespace=self._store.namespace,
            key=cache_key,
            forced=force_refresh,
        )

        self.stats.fetches += 1
        payload = await fetch()

        await self._write(cache_key, payload)
        return payload

    def _accept(
        self,
        entry: CacheEntry[T],
        is_usable: Callable[[CacheEntry[T]], bool] | None,
    ) -> bool:
        if entry.is_expired(self._ttl_seconds, self._clock()):
            logger.debug("cache_entry_expired", namespace=self._store.namespace)
            return False
        if is_usable is not None and not is_usable(entry):
            logger.debug("cache_entry_unusable", namespace=self._store.namespace)
            return False
        return True

    async def _read(self, cache_key: str) -> CacheEntry[T] | None:
        try:
            return await self._store.get(cache_key)
        except Exception:
            self.stats.read_errors += 1
            logger.warning(
                "cache_read_failed",
                namespace=self._store.namespace,
                key=cache_key,
                exc_info=True,
            )
            return None

    async def _write(self, cache_key: str, payload: T) -> None:
        try:
            await self._store.put(cache_key, payload)
        except Exception:
            self.stats.write_errors += 1
            logger.warning(
                "cache_write_failed",
                namespace=self._store.namespace,
                key=cache_key,
                exc_info=True,
            )
