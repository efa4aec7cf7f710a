"""Live rate client for the open.er-api.com ``/v6/latest/{base}`` endpoint.

Response shape:
    {"result": "success", "base_code": "EUR", "rates": {"USD": 1.08, ...}}
    {"result": "error", "error-type": "unsupported-code"}
"""

import time
from collections.abc import Callable

import httpx

from devise.currencies import is_live_supported
from devise.exceptions import InvalidResponse, UnsupportedBase
from devise.logging import get_logger
from devise.models import RateTable
from devise.sources.client import LatestRateSource
from devise.sources.http import get_json

logger = get_logger(__name__)

_UNSUPPORTED_ERROR_TYPES = {"unsupported-code", "malformed-request"}


class OpenErApiClient(LatestRateSource):
    """Fetches the latest rate snapshot and trims it to the live currency set."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._http = http_client
        self._clock = clock

    async def fetch_latest(self, base: str) -> RateTable:
        status, payload = await get_json(self._http, f"/v6/latest/{base}")

        if not isinstance(payload, dict):
            raise InvalidResponse("Rate response is not an object")

        result = str(payload.get("result", "")).lower()
        error_type = payload.get("error-type")

        if error_type in _UNSUPPORTED_ERROR_TYPES or (status == 404 and result != "success"):
            logger.info("latest_base_rejected", base=base, error_type=error_type)
            raise UnsupportedBase(base)

        if result != "success":
            raise InvalidResponse(error_type or f"Invalid rate response (HTTP {status})")

        raw_rates = payload.get("rates")
        if not isinstance(raw_rates, dict):
            raise InvalidResponse("Rates not available")

        rates: dict[str, float] = {}
        dropped = 0
        for code, value in raw_rates.items():
            if not is_live_supported(code):
                dropped += 1
                continue
            try:
                rates[code] = float(value)
            except (TypeError, ValueError):
                logger.warning("invalid_rate_value", code=code, raw=value)

        received_base = payload.get("base_code") or base
        logger.debug(
            "latest_rates_fetched",
            base=received_base,
            kept=len(rates),
            dropped=dropped,
        )
        return RateTable(
            base_currency=received_base,
            rates=rates,
            fetched_at=self._clock(),
        )

    async def close(self) -> None:
        await self._http.aclose()
