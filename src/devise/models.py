"""Shared data models for rate acquisition and conversion.

Rates and amounts are floats end to end. Display rounding happens only when
the converter writes a field back as text.
"""

import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

from devise.exceptions import UnsupportedCurrency

T = TypeVar("T")

_CODE_RE = re.compile(r"^[A-Z]{3}$")

HISTORY_SPANS: tuple[int, ...] = (1, 5, 15)


def normalize_code(code: str) -> str:
    """Upper-case and validate a 3-letter currency code."""
    normalized = (code or "").strip().upper()
    if not _CODE_RE.match(normalized):
        raise UnsupportedCurrency(code, f"Malformed currency code: {code!r}")
    return normalized


class AmountField(str, Enum):
    """One of the two linked amount fields."""

    SOURCE = "source"
    TARGET = "target"

    @property
    def peer(self) -> "AmountField":
        return AmountField.TARGET if self is AmountField.SOURCE else AmountField.SOURCE


class CoordinatorState(str, Enum):
    """Converter state machine states."""

    IDLE = "idle"
    RECOMPUTING = "recomputing"


@dataclass(frozen=True)
class RateTable:
    """Snapshot of conversion rates relative to a single base currency.

    The base maps to 1.0 whether or not it is stored in ``rates``.
    Tables are replaced wholesale on refresh, never patched.
    """

    base_currency: str
    rates: dict[str, float]
    fetched_at: float = field(default_factory=time.time)

    def has(self, code: str) -> bool:
        return code == self.base_currency or code in self.rates

    def rate_for(self, code: str) -> float | None:
        if code == self.base_currency:
            return self.rates.get(code, 1.0)
        return self.rates.get(code)

    def currencies(self) -> list[str]:
        """Codes available in this table, base first."""
        codes = [self.base_currency]
        codes.extend(code for code in self.rates if code != self.base_currency)
        return codes

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_currency": self.base_currency,
            "rates": dict(self.rates),
            "fetched_at": self.fetched_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RateTable":
        return cls(
            base_currency=data["base_currency"],
            rates={code: float(rate) for code, rate in data["rates"].items()},
            fetched_at=float(data.get("fetched_at", 0.0)),
        )


@dataclass(frozen=True)
class HistoricalSeries:
    """Daily rates of ``target_currency`` per unit of ``base_currency``.

    ``points`` is ordered by ISO date ascending.
    """

    base_currency: str
    target_currency: str
    span_years: int
    points: tuple[tuple[str, float], ...]

    @property
    def cache_key(self) -> str:
        return series_cache_key(self.base_currency, self.target_currency, self.span_years)

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_currency": self.base_currency,
            "target_currency": self.target_currency,
            "span_years": self.span_years,
            "points": [[day, rate] for day, rate in self.points],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "HistoricalSeries":
        points = sorted((str(day), float(rate)) for day, rate in data["points"])
        return cls(
            base_currency=data["base_currency"],
            target_currency=data["target_currency"],
            span_years=int(data["span_years"]),
            points=tuple(points),
        )


def series_cache_key(base: str, target: str, years: int) -> str:
    """Cache key for a historical series, e.g. ``EUR_USD_5y``."""
    return f"{base}_{target}_{years}y"


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A persisted payload and the time it was stored (Unix seconds)."""

    payload: T
    stored_at: float

    def age(self, now: float) -> float:
        return now - self.stored_at

    def is_expired(self, ttl_seconds: float, now: float) -> bool:
        return self.age(now) > ttl_seconds


@dataclass(frozen=True)
class ConversionRequest:
    """A single user edit to one of the two amount fields."""

    edited_field: AmountField
    raw_text: str
    from_currency: str
    to_currency: str

    @property
    def edited_currency(self) -> str:
        if self.edited_field is AmountField.SOURCE:
            return self.from_currency
        return self.to_currency

    @property
    def peer_currency(self) -> str:
        if self.edited_field is AmountField.SOURCE:
            return self.to_currency
        return self.from_currency
