"""Time-series client for the Frankfurter API.

Requests ``/v1/{start}..{end}?base=EUR&symbols=USD`` and flattens the
per-date map-of-maps into an ordered (date, rate) sequence for the single
requested target:

    {"base": "EUR", "start_date": "2024-01-02", "end_date": "2025-01-02",
     "rates": {"2024-01-02": {"USD": 1.0956}, ...}}
"""

from collections.abc import Callable
from datetime import date

import httpx

from devise.exceptions import InvalidResponse
from devise.logging import get_logger
from devise.models import HistoricalSeries
from devise.sources.client import SeriesRateSource
from devise.sources.http import get_json

logger = get_logger(__name__)


def years_before(day: date, years: int) -> date:
    """Same calendar day ``years`` earlier; Feb 29 falls back to Feb 28."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)


def date_range(years: int, today: date) -> str:
    """Path segment ``YYYY-MM-DD..YYYY-MM-DD`` covering ``[today - years, today]``."""
    start = years_before(today, years)
    return f"{start.isoformat()}..{today.isoformat()}"


class FrankfurterClient(SeriesRateSource):
    """Fetches daily historical rates for one currency pair."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._http = http_client
        self._today = today

    async def fetch_series(self, base: str, target: str, years: int) -> HistoricalSeries:
        span = date_range(years, self._today())
        status, payload = await get_json(
            self._http,
            f"/v1/{span}",
            params={"base": base, "symbols": target},
        )

        if status >= 400:
            message = payload.get("message") if isinstance(payload, dict) else None
            raise InvalidResponse(message or f"Time series request failed (HTTP {status})")

        if not isinstance(payload, dict) or not isinstance(payload.get("rates"), dict):
            raise InvalidResponse("Time series response has no rates")

        points: list[tuple[str, float]] = []
        skipped = 0
        for day, day_rates in payload["rates"].items():
            value = day_rates.get(target) if isinstance(day_rates, dict) else None
            try:
                points.append((day, float(value)))
            except (TypeError, ValueError):
                skipped += 1
        points.sort(key=lambda point: point[0])

        if skipped:
            logger.debug("series_dates_without_target", target=target, skipped=skipped)
        logger.debug(
            "series_fetched",
            base=base,
            target=target,
            years=years,
            points=len(points),
        )
        return HistoricalSeries(
            base_currency=base,
            target_currency=target,
            span_years=years,
            points=tuple(points),
        )

    async def close(self) -> None:
        await self._http.aclose()
