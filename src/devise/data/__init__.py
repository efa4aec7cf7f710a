"""Rate cache persistence layer.

Provides the SQLite connection manager and the namespaced key-value store
used by the latest-rate and historical-series caches.
"""

from devise.data.database import CacheDatabase
from devise.data.store import CacheStore

__all__ = [
    "CacheDatabase",
    "CacheStore",
]
