"""Tests for ConversionCoordinator, the two-field converter state machine.

The rate repository is replaced with small in-memory fakes so each test
controls exactly when and what a rate lookup returns.
"""

import asyncio

import pytest

from devise.config import ConverterSettings
from devise.exceptions import NetworkError
from devise.models import AmountField, CoordinatorState, RateTable
from devise.state.converter import ConversionCoordinator, format_amount


class FakeRates:
    """Returns a fixed table and records every lookup."""

    def __init__(self, table: RateTable) -> None:
        self.table = table
        self.error: Exception | None = None
        self.calls: list[tuple[str, bool]] = []

    async def get_rates(self, base: str = "EUR", force_refresh: bool = False) -> RateTable:
        self.calls.append((base, force_refresh))
        if self.error is not None:
            raise self.error
        return self.table


class GatedRates:
    """First lookup blocks until released; later lookups return immediately.

    The blocked lookup ignores cancellation and returns ``stale`` once
    cancelled, like a fetch that cannot be interrupted mid-flight.
    """

    def __init__(self, table: RateTable, stale: RateTable) -> None:
        self.table = table
        self.stale = stale
        self.gate = asyncio.Event()
        self.calls = 0

    async def get_rates(self, base: str = "EUR", force_refresh: bool = False) -> RateTable:
        self.calls += 1
        if self.calls > 1:
            return self.table
        try:
            await self.gate.wait()
        except asyncio.CancelledError:
            return self.stale
        return self.stale


STALE_TABLE = RateTable(base_currency="EUR", rates={"USD": 2.0, "GBP": 2.0}, fetched_at=0.0)


async def _edit(
    coordinator: ConversionCoordinator,
    field: AmountField,
    text: str,
    from_code: str = "EUR",
    to_code: str = "USD",
) -> None:
    coordinator.on_amount_changed(field, text, from_code, to_code)
    await coordinator.wait_settled()


class TestFormatAmount:
    def test_hides_float_noise(self) -> None:
        assert format_amount(100 * 1.1) == "110.0"

    def test_negative_zero(self) -> None:
        assert format_amount(-0.0000001) == "0.0"

    def test_precision(self) -> None:
        assert format_amount(1 / 3, precision=2) == "0.33"


class TestStart:
    @pytest.mark.asyncio
    async def test_start_converts_default_amount(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await coordinator.start()

        assert coordinator.from_currency.value == "EUR"
        assert coordinator.to_currency.value == "USD"
        assert coordinator.from_amount.value == "1"
        assert coordinator.to_amount.value == "1.1"
        assert coordinator.currencies.value == ["EUR", "USD", "GBP", "CHF", "JPY"]
        assert coordinator.state.value is CoordinatorState.IDLE
        assert coordinator.loading.value is False
        assert coordinator.error.value is None

    @pytest.mark.asyncio
    async def test_start_failure_is_published_not_raised(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        rates.error = NetworkError("offline")
        coordinator = ConversionCoordinator(rates, converter_settings)
        await coordinator.start()

        assert coordinator.error.value == "offline"
        assert coordinator.loading.value is False
        assert coordinator.to_amount.value == ""


class TestBidirectionalEdits:
    @pytest.mark.asyncio
    async def test_source_edit_updates_target(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        assert coordinator.from_amount.value == "100"
        assert coordinator.to_amount.value == "110.0"

    @pytest.mark.asyncio
    async def test_target_edit_updates_source(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")
        await _edit(coordinator, AmountField.TARGET, "55")

        assert coordinator.to_amount.value == "55"
        assert coordinator.from_amount.value == "50.0"

    @pytest.mark.asyncio
    async def test_cross_rate_uses_configured_base(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "110", "USD", "GBP")

        assert coordinator.to_amount.value == "85.0"
        assert rates.calls == [("EUR", False)]

    @pytest.mark.asyncio
    async def test_empty_text_converts_to_zero(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")
        await _edit(coordinator, AmountField.SOURCE, "")

        assert coordinator.to_amount.value == "0.0"

    @pytest.mark.asyncio
    async def test_state_transitions(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        states: list[CoordinatorState] = []
        coordinator.state.subscribe(states.append)

        await _edit(coordinator, AmountField.SOURCE, "5")

        assert states == [CoordinatorState.RECOMPUTING, CoordinatorState.IDLE]

    @pytest.mark.asyncio
    async def test_each_edit_bumps_generation(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "1")
        await _edit(coordinator, AmountField.SOURCE, "2")

        assert coordinator.generation == 2
        assert coordinator.snapshot()["generation"] == 2


class TestEchoSuppression:
    @pytest.mark.asyncio
    async def test_echo_of_programmatic_write_is_ignored(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        task = coordinator.on_amount_changed(AmountField.TARGET, "110.0", "EUR", "USD")

        assert task is None
        assert coordinator.generation == 1
        assert coordinator.from_amount.value == "100"
        assert len(rates.calls) == 1

    @pytest.mark.asyncio
    async def test_echo_is_one_shot(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        assert coordinator.on_amount_changed(AmountField.TARGET, "110.0", "EUR", "USD") is None
        second = coordinator.on_amount_changed(AmountField.TARGET, "110.0", "EUR", "USD")
        await coordinator.wait_settled()

        assert second is not None
        assert coordinator.from_amount.value == "100.0"

    @pytest.mark.asyncio
    async def test_different_text_is_a_real_edit(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")
        await _edit(coordinator, AmountField.TARGET, "11")

        assert coordinator.from_amount.value == "10.0"


class TestSupersededEdits:
    @pytest.mark.asyncio
    async def test_only_latest_edit_is_applied(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = GatedRates(eur_table, STALE_TABLE)
        coordinator = ConversionCoordinator(rates, converter_settings)

        first = coordinator.on_amount_changed(AmountField.SOURCE, "100", "EUR", "USD")
        await asyncio.sleep(0)  # first lookup is now blocked on the gate
        coordinator.on_amount_changed(AmountField.SOURCE, "200", "EUR", "USD")
        await coordinator.wait_settled()
        await asyncio.wait({first})

        assert rates.calls == 2
        assert coordinator.to_amount.value == "220.0"
        assert coordinator.rate_table.value == eur_table

    @pytest.mark.asyncio
    async def test_stale_result_after_newer_edit_is_discarded(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = GatedRates(eur_table, STALE_TABLE)
        coordinator = ConversionCoordinator(rates, converter_settings)

        first = coordinator.on_amount_changed(AmountField.SOURCE, "100", "EUR", "USD")
        await asyncio.sleep(0)
        coordinator.on_amount_changed(AmountField.TARGET, "11", "EUR", "USD")
        await coordinator.wait_settled()
        written = coordinator.from_amount.value

        rates.gate.set()
        await asyncio.wait({first})

        assert written == "10.0"
        assert coordinator.from_amount.value == "10.0"
        assert coordinator.to_amount.value == "11"


class TestCurrencyOperations:
    @pytest.mark.asyncio
    async def test_select_currencies_recomputes_target(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        coordinator.select_currencies("EUR", "GBP")
        await coordinator.wait_settled()

        assert coordinator.to_currency.value == "GBP"
        assert coordinator.to_amount.value == "85.0"

    @pytest.mark.asyncio
    async def test_swap_exchanges_codes_and_amounts(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        coordinator.swap()
        await coordinator.wait_settled()

        assert coordinator.from_currency.value == "USD"
        assert coordinator.to_currency.value == "EUR"
        assert coordinator.from_amount.value == "110.0"
        assert coordinator.to_amount.value == "100.0"

    @pytest.mark.asyncio
    async def test_swap_echo_is_ignored(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")
        coordinator.swap()
        await coordinator.wait_settled()
        generation = coordinator.generation

        assert coordinator.on_amount_changed(AmountField.SOURCE, "110.0", "USD", "EUR") is None
        assert coordinator.generation == generation

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        coordinator.refresh()
        await coordinator.wait_settled()

        assert rates.calls[-1] == ("EUR", True)


class TestErrors:
    @pytest.mark.asyncio
    async def test_failure_keeps_previous_peer_value(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        rates.error = NetworkError("Network timeout")
        await _edit(coordinator, AmountField.SOURCE, "200")

        assert coordinator.from_amount.value == "200"
        assert coordinator.to_amount.value == "110.0"
        assert coordinator.error.value == "Network timeout"
        assert coordinator.loading.value is False
        assert coordinator.state.value is CoordinatorState.IDLE

    @pytest.mark.asyncio
    async def test_unknown_currency_reported(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        coordinator = ConversionCoordinator(FakeRates(eur_table), converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100", "EUR", "SEK")

        assert coordinator.error.value == "No rate available for SEK"

    @pytest.mark.asyncio
    async def test_next_edit_clears_error(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        rates.error = NetworkError("offline")
        await _edit(coordinator, AmountField.SOURCE, "100")
        rates.error = None
        await _edit(coordinator, AmountField.SOURCE, "10")

        assert coordinator.error.value is None
        assert coordinator.to_amount.value == "11.0"

    @pytest.mark.asyncio
    async def test_close_cancels_in_flight(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = GatedRates(eur_table, STALE_TABLE)
        coordinator = ConversionCoordinator(rates, converter_settings)
        coordinator.on_amount_changed(AmountField.SOURCE, "100", "EUR", "USD")
        await asyncio.sleep(0)

        await coordinator.close()

        assert coordinator.to_amount.value == ""
        assert coordinator.loading.value is False
        assert coordinator.state.value is CoordinatorState.IDLE

    @pytest.mark.asyncio
    async def test_same_text_retried_after_failure(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        rates.error = NetworkError("offline")
        await _edit(coordinator, AmountField.SOURCE, "100")
        rates.error = None

        task = coordinator.on_amount_changed(AmountField.SOURCE, "100", "EUR", "USD")
        await coordinator.wait_settled()

        assert task is not None
        assert len(rates.calls) == 2
        assert coordinator.error.value is None
        assert coordinator.to_amount.value == "110.0"

    @pytest.mark.asyncio
    async def test_default_amount_retried_after_failed_start(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        rates.error = NetworkError("offline")
        coordinator = ConversionCoordinator(rates, converter_settings)
        await coordinator.start()
        rates.error = None

        await _edit(coordinator, AmountField.SOURCE, "1")

        assert coordinator.error.value is None
        assert coordinator.to_amount.value == "1.1"

    @pytest.mark.asyncio
    async def test_repeated_user_text_after_success_recomputes(
        self, eur_table: RateTable, converter_settings: ConverterSettings
    ) -> None:
        rates = FakeRates(eur_table)
        coordinator = ConversionCoordinator(rates, converter_settings)
        await _edit(coordinator, AmountField.SOURCE, "100")

        task = coordinator.on_amount_changed(AmountField.SOURCE, "100", "EUR", "USD")
        await coordinator.wait_settled()

        assert task is not None
        assert len(rates.calls) == 2
