"""Typed key-value cache store over CacheDatabase.

Each CacheStore owns one namespace (key space) in the cache_entries table.
Payloads are serialized to JSON through the encode/decode pair supplied at
construction, and every write stamps the current clock time.
"""

import json
import time
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from devise.data.database import CacheDatabase
from devise.logging import get_logger
from devise.models import CacheEntry

logger = get_logger(__name__)

T = TypeVar("T")


class CacheStore(Generic[T]):
    """Async persistent cache of one payload per key.

    There is no eviction: ``put`` overwrites the previous entry for a key in
    a single statement, so readers see either the old or the new entry.

    Usage:
        async with CacheDatabase("data/devise_cache.db") as database:
            store = CacheStore(database, "latest_rates", RateTable.to_dict, RateTable.from_dict)
            await store.put("latest", table)
            entry = await store.get("latest")
    """

    def __init__(
        self,
        database: CacheDatabase,
        namespace: str,
        encode: Callable[[T], dict[str, Any]],
        decode: Callable[[dict[str, Any]], T],
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._database = database
        self._namespace = namespace
        self._encode = encode
        self._decode = decode
        self._clock = clock

    @property
    def namespace(self) -> str:
        return self._namespace

    async def get(self, key: str) -> CacheEntry[T] | None:
        """Return the entry stored under ``key``, or None if absent."""
        cursor = await self._database.db.execute(
            "SELECT payload, stored_at FROM cache_entries "
            "WHERE namespace = ? AND cache_key = ?",
            (self._namespace, key),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        payload = self._decode(json.loads(row[0]))
        return CacheEntry(payload=payload, stored_at=float(row[1]))

    async def put(self, key: str, payload: T) -> None:
        """Store ``payload`` under ``key``, replacing any previous entry."""
        stored_at = self._clock()
        await self._database.db.execute(
            "INSERT OR REPLACE INTO cache_entries "
            "(namespace, cache_key, payload, stored_at) VALUES (?, ?, ?, ?)",
            (self._namespace, key, json.dumps(self._encode(payload)), stored_at),
        )
        await self._database.db.commit()
        logger.debug("cache_entry_written", namespace=self._namespace, key=key)

    async def clear(self, key: str) -> None:
        await self._database.db.execute(
            "DELETE FROM cache_entries WHERE namespace = ? AND cache_key = ?",
            (self._namespace, key),
        )
        await self._database.db.commit()

    async def keys(self) -> list[str]:
        """List keys currently stored in this namespace."""
        cursor = await self._database.db.execute(
            "SELECT cache_key FROM cache_entries WHERE namespace = ? ORDER BY cache_key",
            (self._namespace,),
        )
        rows = await cursor.fetchall()
        return [row[0] for row in rows]
