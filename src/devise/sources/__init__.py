"""Rate source layer -- live snapshots and historical time series over httpx."""

from devise.sources.client import LatestRateSource, SeriesRateSource
from devise.sources.frankfurter_client import FrankfurterClient
from devise.sources.http import build_http_client
from devise.sources.open_er_client import OpenErApiClient

__all__ = [
    "FrankfurterClient",
    "LatestRateSource",
    "OpenErApiClient",
    "SeriesRateSource",
    "build_http_client",
]
