"""Cache-first rate retrieval for live tables and historical series."""

from devise.rates.cache_manager import CacheStats, RateCacheManager
from devise.rates.repositories import (
    LATEST_KEY,
    LATEST_NAMESPACE,
    HistoricalRateRepository,
    LatestRateRepository,
    history_namespace,
)

__all__ = [
    "LATEST_KEY",
    "LATEST_NAMESPACE",
    "CacheStats",
    "HistoricalRateRepository",
    "LatestRateRepository",
    "RateCacheManager",
    "history_namespace",
]
