"""Tests for the JSON API and the DeviseError to HTTP status mapping.

The app is built without a lifespan; components are placed on app.state
directly, with fake rate sources so no network or disk is touched.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from devise.api.app import create_app
from devise.config import ConverterSettings
from devise.exceptions import NetworkError, NotAuthenticated, UnsupportedCurrency
from devise.models import HistoricalSeries, RateTable
from devise.rates.repositories import LatestRateRepository
from devise.state.converter import ConversionCoordinator
from devise.state.history import HistoryController

DAY = 86_400.0


class FakeHistoricalRepository:
    def __init__(self) -> None:
        self.signed_in = True

    def is_supported(self, base: str, target: str) -> bool:
        return "AED" not in (base, target)

    async def get_series(self, base: str, target: str, years: int) -> HistoricalSeries:
        if not self.is_supported(base, target):
            raise UnsupportedCurrency("AED", f"No history available for {base}/{target}")
        if not self.signed_in:
            raise NotAuthenticated("User not logged in")
        return HistoricalSeries(
            base_currency=base,
            target_currency=target,
            span_years=years,
            points=(("2024-01-02", 1.09), ("2024-01-03", 1.1)),
        )


def _memory_store() -> AsyncMock:
    store = AsyncMock()
    store.namespace = "latest_rates"
    store.get = AsyncMock(return_value=None)
    store.put = AsyncMock()
    store.keys = AsyncMock(return_value=["latest"])
    return store


@pytest.fixture
def source(eur_table: RateTable) -> AsyncMock:
    source = AsyncMock()
    source.fetch_latest = AsyncMock(return_value=eur_table)
    return source


@pytest.fixture
def historical() -> FakeHistoricalRepository:
    return FakeHistoricalRepository()


@pytest.fixture
def client(source, historical, converter_settings: ConverterSettings):
    latest = LatestRateRepository(source, _memory_store(), DAY)
    app = create_app()
    app.state.latest_repository = latest
    app.state.historical_repository = historical
    app.state.coordinator = ConversionCoordinator(latest, converter_settings)
    app.state.history = HistoryController(historical)
    with TestClient(app) as test_client:
        yield test_client


class TestConverterEndpoints:
    def test_amount_edit_returns_settled_state(self, client: TestClient) -> None:
        response = client.post(
            "/api/converter/amount",
            json={"field": "source", "text": "100", "from_currency": "eur", "to_currency": "usd"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["from_currency"] == "EUR"
        assert data["to_amount"] == "110.0"
        assert data["state"] == "idle"
        assert data["rates_base"] == "EUR"

    def test_target_edit(self, client: TestClient) -> None:
        response = client.post(
            "/api/converter/amount",
            json={"field": "target", "text": "55", "from_currency": "EUR", "to_currency": "USD"},
        )
        assert response.json()["from_amount"] == "50.0"

    def test_swap(self, client: TestClient) -> None:
        client.post(
            "/api/converter/amount",
            json={"field": "source", "text": "100", "from_currency": "EUR", "to_currency": "USD"},
        )
        data = client.post("/api/converter/swap").json()

        assert data["from_currency"] == "USD"
        assert data["to_currency"] == "EUR"
        assert data["from_amount"] == "110.0"
        assert data["to_amount"] == "100.0"

    def test_select_currencies(self, client: TestClient) -> None:
        client.post(
            "/api/converter/amount",
            json={"field": "source", "text": "100", "from_currency": "EUR", "to_currency": "USD"},
        )
        data = client.post(
            "/api/converter/currencies", json={"from_currency": "EUR", "to_currency": "GBP"}
        ).json()
        assert data["to_amount"] == "85.0"

    def test_refresh_forces_fetch(self, client: TestClient, source: AsyncMock) -> None:
        client.post("/api/converter/refresh")
        client.post("/api/converter/refresh")
        assert source.fetch_latest.await_count == 2

    def test_conversion_error_is_in_state(self, client: TestClient, source: AsyncMock) -> None:
        source.fetch_latest.side_effect = NetworkError("Network timeout")
        data = client.post(
            "/api/converter/amount",
            json={"field": "source", "text": "1", "from_currency": "EUR", "to_currency": "USD"},
        ).json()
        assert data["error"] == "Network timeout"
        assert data["loading"] is False

    def test_same_amount_resubmitted_after_failure(
        self, client: TestClient, source: AsyncMock, eur_table: RateTable
    ) -> None:
        edit = {"field": "source", "text": "100", "from_currency": "EUR", "to_currency": "USD"}
        source.fetch_latest.side_effect = NetworkError("Network timeout")
        failed = client.post("/api/converter/amount", json=edit).json()
        assert failed["error"] == "Network timeout"

        source.fetch_latest.side_effect = None
        source.fetch_latest.return_value = eur_table
        retried = client.post("/api/converter/amount", json=edit).json()

        assert retried["error"] is None
        assert retried["to_amount"] == "110.0"

    def test_malformed_code_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/converter/amount",
            json={"field": "source", "text": "1", "from_currency": "EURO", "to_currency": "USD"},
        )
        assert response.status_code == 422

    def test_currencies_before_first_load(self, client: TestClient) -> None:
        data = client.get("/api/currencies").json()
        assert len(data) == 30
        assert data[0] == {"code": "EUR", "label": "🇪🇺 EUR - Euro"}


class TestRateEndpoints:
    def test_get_rates(self, client: TestClient, source: AsyncMock) -> None:
        data = client.get("/api/rates", params={"base": "eur"}).json()
        assert data["base_currency"] == "EUR"
        assert data["rates"]["USD"] == 1.1
        source.fetch_latest.assert_awaited_once_with("EUR")

    def test_upstream_failure_is_502(self, client: TestClient, source: AsyncMock) -> None:
        source.fetch_latest.side_effect = NetworkError("Network timeout")
        response = client.get("/api/rates")
        assert response.status_code == 502
        assert response.json() == {"error": "Network timeout", "type": "NetworkError"}

    def test_cache_status(self, client: TestClient) -> None:
        client.get("/api/rates")
        data = client.get("/api/cache").json()
        assert data["namespace"] == "latest_rates"
        assert data["keys"] == ["latest"]
        assert data["fetches"] == 1


class TestHistoryEndpoints:
    def test_get_history(self, client: TestClient) -> None:
        data = client.get("/api/history", params={"base": "EUR", "target": "USD", "years": 5}).json()
        assert data["span_years"] == 5
        assert data["points"][0] == ["2024-01-02", 1.09]

    def test_unsupported_pair_is_400(self, client: TestClient) -> None:
        response = client.get("/api/history", params={"base": "EUR", "target": "AED"})
        assert response.status_code == 400
        assert response.json()["type"] == "UnsupportedCurrency"

    def test_signed_out_is_401(self, client: TestClient, historical: FakeHistoricalRepository) -> None:
        historical.signed_in = False
        response = client.get("/api/history", params={"base": "EUR", "target": "USD"})
        assert response.status_code == 401
        assert response.json()["error"] == "User not logged in"

    def test_invalid_span_is_422(self, client: TestClient) -> None:
        response = client.get("/api/history", params={"base": "EUR", "target": "USD", "years": 3})
        assert response.status_code == 422

    def test_load_then_change_period(self, client: TestClient) -> None:
        loaded = client.post(
            "/api/history/load", json={"base": "EUR", "target": "GBP", "years": 1}
        ).json()
        assert loaded["base"] == "EUR"
        assert loaded["target"] == "GBP"
        assert len(loaded["points"]) == 2

        changed = client.post("/api/history/period", json={"years": 15}).json()
        assert changed["years"] == 15
        assert changed["error"] is None

    def test_load_failure_in_state(self, client: TestClient) -> None:
        data = client.post(
            "/api/history/load", json={"base": "EUR", "target": "AED", "years": 1}
        ).json()
        assert data["error"] == "No history available for EUR/AED"
        assert data["points"] == []
