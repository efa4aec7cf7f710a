"""Latest-rate and historical-series repositories.

Both are thin instances of RateCacheManager; they differ only in key shape,
invalidation predicate and which source they fetch from.
"""

import time
from collections.abc import Callable

from devise.currencies import HISTORICAL_CURRENCIES, LIVE_CURRENCIES, is_historical_supported
from devise.data.database import CacheDatabase
from devise.data.store import CacheStore
from devise.exceptions import NotAuthenticated, UnsupportedBase, UnsupportedCurrency
from devise.identity import IdentityProvider
from devise.logging import get_logger
from devise.models import (
    HISTORY_SPANS,
    HistoricalSeries,
    RateTable,
    normalize_code,
    series_cache_key,
)
from devise.rates.cache_manager import RateCacheManager
from devise.sources.client import LatestRateSource, SeriesRateSource

logger = get_logger(__name__)

LATEST_NAMESPACE = "latest_rates"
LATEST_KEY = "latest"


def history_namespace(user_id: str) -> str:
    """Per-user key space for cached series."""
    return f"users/{user_id}/rate_history"


class LatestRateRepository:
    """Cache-first access to the current rate table.

    Only one table is cached at a time. Asking for a different base than the
    cached table's is a miss even inside the TTL.

    Usage:
        repo = LatestRateRepository(OpenErApiClient(http), store, ttl_seconds=86_400)
        table = await repo.get_rates("EUR")
    """

    def __init__(
        self,
        source: LatestRateSource,
        store: CacheStore[RateTable],
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._manager: RateCacheManager[RateTable] = RateCacheManager(
            store, ttl_seconds, clock=clock
        )

    @property
    def manager(self) -> RateCacheManager[RateTable]:
        return self._manager

    async def get_rates(self, base: str = "EUR", force_refresh: bool = False) -> RateTable:
        try:
            code = normalize_code(base)
        except UnsupportedCurrency as e:
            raise UnsupportedBase(base) from e

        return await self._manager.retrieve(
            LATEST_KEY,
            lambda: self._source.fetch_latest(code),
            force_refresh=force_refresh,
            is_usable=lambda entry: entry.payload.base_currency == code,
        )

    def supported_currencies(self) -> list[str]:
        return list(LIVE_CURRENCIES)


class HistoricalRateRepository:
    """Cache-first access to historical series, namespaced per user.

    Unsupported pairs are rejected before any cache or network access.
    """

    def __init__(
        self,
        source: SeriesRateSource,
        database: CacheDatabase,
        identity: IdentityProvider,
        ttl_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._database = database
        self._identity = identity
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._managers: dict[str, RateCacheManager[HistoricalSeries]] = {}

    def is_supported(self, base: str, target: str) -> bool:
        return is_historical_supported(base.upper(), target.upper())

    async def get_series(
        self,
        base: str,
        target: str,
        years: int,
        force_refresh: bool = False,
    ) -> HistoricalSeries:
        base_code = normalize_code(base)
        target_code = normalize_code(target)
        if not is_historical_supported(base_code, target_code):
            unsupported = target_code if base_code in HISTORICAL_CURRENCIES else base_code
            logger.info("history_pair_unsupported", base=base_code, target=target_code)
            raise UnsupportedCurrency(
                unsupported,
                f"No history available for {base_code}/{target_code}",
            )
        if years not in HISTORY_SPANS:
            raise ValueError(f"History span must be one of {HISTORY_SPANS}, got {years}")

        user_id = self._identity.current_user_id()
        if not user_id:
            raise NotAuthenticated("User not logged in")

        manager = self.manager_for(user_id)
        return await manager.retrieve(
            series_cache_key(base_code, target_code, years),
            lambda: self._source.fetch_series(base_code, target_code, years),
            force_refresh=force_refresh,
        )

    def manager_for(self, user_id: str) -> RateCacheManager[HistoricalSeries]:
        manager = self._managers.get(user_id)
        if manager is None:
            store: CacheStore[HistoricalSeries] = CacheStore(
                self._database,
                history_namespace(user_id),
                HistoricalSeries.to_dict,
                HistoricalSeries.from_dict,
                clock=self._clock,
            )
            manager = RateCacheManager(store, self._ttl_seconds, clock=self._clock)
            self._managers[user_id] = manager
        return manager
