"""Two-field converter state machine.

Mediates the SOURCE and TARGET amount fields so that editing either one
recomputes the other exactly once:

    IDLE --edit(F)--> RECOMPUTING --peer written / error--> IDLE
    RECOMPUTING --edit(F')--> RECOMPUTING   (previous task cancelled)

Every edit bumps a generation counter. A recompute only publishes if its
generation is still the latest, so a slow, superseded rate lookup can never
overwrite the result of a newer edit. Cancelling does not wait for the
superseded task to unwind.

Programmatic writes to a field are remembered as one-shot echoes: when the
display binding reports that exact text back as an edit, it is dropped
instead of starting a recompute in the opposite direction.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import structlog

from devise.config import ConverterSettings
from devise.conversion.engine import convert
from devise.currencies import LIVE_CURRENCIES
from devise.exceptions import DeviseError
from devise.logging import get_logger
from devise.models import AmountField, ConversionRequest, CoordinatorState, RateTable
from devise.state.observable import Observable

if TYPE_CHECKING:
    from devise.rates.repositories import LatestRateRepository

logger = get_logger(__name__)


def format_amount(value: float, precision: int = 6) -> str:
    """Render a converted amount for an input field.

    Rounds to ``precision`` decimals to hide float noise
    (``110.00000000000001`` shows as ``110.0``).
    """
    rounded = round(value, precision)
    if rounded == 0:
        rounded = 0.0  # no "-0.0"
    return str(rounded)


class ConversionCoordinator:
    """Owns converter state and recomputes the peer field on every edit.

    Args:
        rates: Cache-first source of the current RateTable.
        settings: Base currency requested from the rate source, defaults,
                  debounce delay and display precision.
    """

    def __init__(self, rates: LatestRateRepository, settings: ConverterSettings) -> None:
        self._rates = rates
        self._settings = settings

        self.currencies: Observable[list[str]] = Observable([], "currencies")
        self.from_amount: Observable[str] = Observable("", "from_amount")
        self.to_amount: Observable[str] = Observable("", "to_amount")
        self.from_currency: Observable[str] = Observable(settings.default_from, "from_currency")
        self.to_currency: Observable[str] = Observable(settings.default_to, "to_currency")
        self.loading: Observable[bool] = Observable(False, "loading")
        self.error: Observable[str | None] = Observable(None, "error")
        self.state: Observable[CoordinatorState] = Observable(CoordinatorState.IDLE, "state")
        self.rate_table: Observable[RateTable | None] = Observable(None, "rate_table")

        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._echoes: dict[AmountField, str] = {}

    @property
    def generation(self) -> int:
        return self._generation

    def observables(self) -> list[Observable[Any]]:
        return [
            self.currencies,
            self.from_amount,
            self.to_amount,
            self.from_currency,
            self.to_currency,
            self.loading,
            self.error,
            self.state,
            self.rate_table,
        ]

    # ──────────────────────────────────────────────
    # Display-facing operations
    # ──────────────────────────────────────────────

    async def start(self) -> None:
        """Load the currency list and convert the default amount.

        Failures are published on ``error``; start never raises for a
        rate-source problem.
        """
        self.from_currency.set(self._settings.default_from)
        self.to_currency.set(self._settings.default_to)
        self._submit(
            ConversionRequest(
                edited_field=AmountField.SOURCE,
                raw_text=self._settings.default_amount,
                from_currency=self._settings.default_from,
                to_currency=self._settings.default_to,
            )
        )
        await self.wait_settled()

    def on_amount_changed(
        self,
        field: AmountField | str,
        text: str,
        from_code: str,
        to_code: str,
    ) -> asyncio.Task[None] | None:
        """Handle a user edit to one of the two amount fields.

        Returns the scheduled recompute task, or None if the edit was the
        echo of this coordinator's own last write to that field.
        """
        field = AmountField(field)
        text = text or ""
        echo = self._echoes.pop(field, None)
        if (
            echo is not None
            and echo == text
            and from_code == self.from_currency.value
            and to_code == self.to_currency.value
        ):
            logger.debug("echo_edit_ignored", field=field.value)
            return None

        return self._submit(
            ConversionRequest(
                edited_field=field,
                raw_text=text,
                from_currency=from_code,
                to_currency=to_code,
            )
        )

    def select_currencies(self, from_code: str, to_code: str) -> asyncio.Task[None]:
        """Change the pair; recomputes TARGET from the current SOURCE amount."""
        return self._submit(
            ConversionRequest(
                edited_field=AmountField.SOURCE,
                raw_text=self.from_amount.value,
                from_currency=from_code,
                to_currency=to_code,
            )
        )

    def swap(self) -> asyncio.Task[None]:
        """Swap currencies and amounts, then recompute TARGET from SOURCE."""
        new_from, new_to = self.to_currency.value, self.from_currency.value
        new_from_text, new_to_text = self.to_amount.value, self.from_amount.value

        self.from_currency.set(new_from)
        self.to_currency.set(new_to)
        self._write_field(AmountField.SOURCE, new_from_text)
        self._write_field(AmountField.TARGET, new_to_text)

        logger.info("currencies_swapped", from_currency=new_from, to_currency=new_to)
        return self._submit(
            ConversionRequest(
                edited_field=AmountField.SOURCE,
                raw_text=new_from_text,
                from_currency=new_from,
                to_currency=new_to,
            )
        )

    def refresh(self) -> asyncio.Task[None]:
        """Bypass the cache and recompute TARGET from SOURCE."""
        return self._submit(
            ConversionRequest(
                edited_field=AmountField.SOURCE,
                raw_text=self.from_amount.value,
                from_currency=self.from_currency.value,
                to_currency=self.to_currency.value,
            ),
            force_refresh=True,
        )

    async def wait_settled(self) -> None:
        """Wait until no recompute is in flight, following superseding edits."""
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    async def close(self) -> None:
        """Cancel any in-flight recompute and wait for it to unwind.

        Bumps the generation so a lookup that finishes anyway never publishes.
        """
        self._generation += 1
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
        self.loading.set(False)
        self.state.set(CoordinatorState.IDLE)

    def snapshot(self) -> dict[str, Any]:
        """Plain-data view of the converter for display clients."""
        table = self.rate_table.value
        return {
            "currencies": list(self.currencies.value),
            "from_currency": self.from_currency.value,
            "to_currency": self.to_currency.value,
            "from_amount": self.from_amount.value,
            "to_amount": self.to_amount.value,
            "loading": self.loading.value,
            "error": self.error.value,
            "state": self.state.value.value,
            "generation": self._generation,
            "rates_base": table.base_currency if table is not None else None,
            "rates_fetched_at": table.fetched_at if table is not None else None,
        }

    # ──────────────────────────────────────────────
    # State machine internals
    # ──────────────────────────────────────────────

    def _submit(self, request: ConversionRequest, force_refresh: bool = False) -> asyncio.Task[None]:
        """Record the edit, supersede any in-flight recompute, schedule a new one."""
        self._generation += 1
        generation = self._generation

        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug("recompute_superseded", generation=generation - 1)

        self.from_currency.set(request.from_currency)
        self.to_currency.set(request.to_currency)
        # the edited text came from the display, so there is no echo to mute
        self._field(request.edited_field).set(request.raw_text)

        self.state.set(CoordinatorState.RECOMPUTING)
        self.error.set(None)
        self.loading.set(True)

        self._task = asyncio.get_running_loop().create_task(
            self._recompute(request, generation, force_refresh),
            name=f"recompute-{generation}",
        )
        return self._task

    async def _recompute(
        self,
        request: ConversionRequest,
        generation: int,
        force_refresh: bool,
    ) -> None:
        with structlog.contextvars.bound_contextvars(
            generation=generation, field=request.edited_field.value
        ):
            if self._settings.debounce_seconds > 0:
                await asyncio.sleep(self._settings.debounce_seconds)

            try:
                table = await self._rates.get_rates(
                    self._settings.base_currency, force_refresh=force_refresh
                )
                value = convert(
                    table,
                    request.raw_text,
                    request.edited_currency,
                    request.peer_currency,
                )
            except DeviseError as e:
                if generation == self._generation:
                    self._fail(str(e))
                return
            except Exception:
                # background task boundary: nobody awaits this task's result
                logger.error("recompute_crashed", exc_info=True)
                if generation == self._generation:
                    self._fail("Unexpected error while converting")
                return

            if generation != self._generation:
                logger.debug("stale_result_discarded", latest=self._generation)
                return

            self._apply(request, table, value)

    def _apply(self, request: ConversionRequest, table: RateTable, value: float) -> None:
        peer = request.edited_field.peer
        text = format_amount(value, self._settings.display_precision)

        self.rate_table.set(table)
        if not self.currencies.value:
            self.currencies.set([code for code in LIVE_CURRENCIES if table.has(code)])

        self._write_field(peer, text)
        self.loading.set(False)
        self.state.set(CoordinatorState.IDLE)
        logger.debug("peer_field_updated", peer=peer.value, value=text)

    def _fail(self, message: str) -> None:
        logger.warning("recompute_failed", error=message)
        # a failed edit must be retryable with the same text
        self._echoes.clear()
        self.error.set(message or "Conversion failed")
        self.loading.set(False)
        self.state.set(CoordinatorState.IDLE)

    def _write_field(self, field: AmountField, text: str) -> None:
        """Programmatic write; the display's echo of it is ignored once."""
        pending = self._echoes.get(field)
        self._echoes[field] = text
        if not self._field(field).set(text):
            # unchanged values are not re-rendered, so no new echo is coming
            if pending is None:
                self._echoes.pop(field, None)
            else:
                self._echoes[field] = pending

    def _field(self, field: AmountField) -> Observable[str]:
        return self.from_amount if field is AmountField.SOURCE else self.to_amount
