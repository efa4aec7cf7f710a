"""Shared test fixtures for the rate engine."""

import pytest

from devise.config import AppSettings, CacheSettings, ConverterSettings, IdentitySettings
from devise.models import RateTable


class FakeClock:
    """Manually advanced Unix-seconds clock."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def converter_settings() -> ConverterSettings:
    """Converter defaults with debounce disabled so tests settle immediately."""
    return ConverterSettings(
        base_currency="EUR",
        default_from="EUR",
        default_to="USD",
        default_amount="1",
        debounce_seconds=0.0,
        display_precision=6,
    )


@pytest.fixture
def mock_settings(tmp_path, converter_settings: ConverterSettings) -> AppSettings:
    """AppSettings pointing at a temporary cache file."""
    return AppSettings(
        log_level="DEBUG",
        cache=CacheSettings(db_path=str(tmp_path / "cache.db"), ttl_hours=24),
        converter=converter_settings,
        identity=IdentitySettings(user_id="user-123"),
    )


@pytest.fixture
def eur_table() -> RateTable:
    """EUR-based table with a few round-ish rates."""
    return RateTable(
        base_currency="EUR",
        rates={"EUR": 1.0, "USD": 1.1, "GBP": 0.85, "JPY": 160.0, "CHF": 0.95},
        fetched_at=1_700_000_000.0,
    )
