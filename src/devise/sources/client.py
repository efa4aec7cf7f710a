"""Abstract rate source interfaces.

Defines the contracts for the two remote services the engine reads from.
Cache and converter code depends only on these interfaces, keeping
service-specific URL shapes and payload quirks in the concrete clients.
"""

from abc import ABC, abstractmethod

from devise.models import HistoricalSeries, RateTable


class LatestRateSource(ABC):
    """A service returning the current rate snapshot for a base currency."""

    @abstractmethod
    async def fetch_latest(self, base: str) -> RateTable:
        """Fetch current rates relative to ``base``.

        Raises UnsupportedBase if the service rejects the base, NetworkError
        on transport failure and InvalidResponse on a malformed payload.
        Codes outside the supported live set are dropped from the result.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...


class SeriesRateSource(ABC):
    """A service returning daily rates between two currencies over a range."""

    @abstractmethod
    async def fetch_series(self, base: str, target: str, years: int) -> HistoricalSeries:
        """Fetch ``years`` of daily ``target`` rates per unit of ``base``, up to today."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release the underlying HTTP client."""
        ...
