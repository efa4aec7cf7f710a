"""State for the historical-rate chart of one currency pair.

Loads a series for the current pair and selected span (1, 5 or 15 years).
A new load cancels the one in flight; only the latest load publishes.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from devise.exceptions import DeviseError
from devise.logging import get_logger
from devise.state.observable import Observable

if TYPE_CHECKING:
    from devise.rates.repositories import HistoricalRateRepository

logger = get_logger(__name__)


class HistoryController:
    """Observable history state for a chart view."""

    def __init__(self, repository: HistoricalRateRepository, default_years: int = 1) -> None:
        self._repository = repository

        self.loading: Observable[bool] = Observable(False, "loading")
        self.error: Observable[str | None] = Observable(None, "error")
        self.historical_points: Observable[list[tuple[str, float]]] = Observable(
            [], "historical_points"
        )
        self.selected_period: Observable[int] = Observable(default_years, "selected_period")

        self._base = ""
        self._target = ""
        self._task: asyncio.Task[None] | None = None

    @property
    def pair(self) -> tuple[str, str]:
        return self._base, self._target

    def is_supported(self, base: str, target: str) -> bool:
        return self._repository.is_supported(base, target)

    def load_history(self, base: str, target: str, years: int = 1) -> asyncio.Task[None]:
        """Start loading ``years`` of history for ``base``/``target``."""
        self._base = base
        self._target = target
        self.selected_period.set(years)

        if self._task is not None and not self._task.done():
            self._task.cancel()

        self.loading.set(True)
        self.error.set(None)
        task = asyncio.get_running_loop().create_task(self._load(base, target, years))
        self._task = task
        return task

    def set_period(self, years: int) -> asyncio.Task[None] | None:
        """Reload the current pair for a new span. No-op if unchanged or no pair."""
        if years == self.selected_period.value or not self._base:
            return None
        return self.load_history(self._base, self._target, years)

    async def wait_settled(self) -> None:
        while self._task is not None and not self._task.done():
            await asyncio.wait({self._task})

    async def close(self) -> None:
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})

    def snapshot(self) -> dict[str, Any]:
        return {
            "base": self._base,
            "target": self._target,
            "years": self.selected_period.value,
            "loading": self.loading.value,
            "error": self.error.value,
            "points": [[day, rate] for day, rate in self.historical_points.value],
        }

    async def _load(self, base: str, target: str, years: int) -> None:
        current = asyncio.current_task()
        try:
            series = await self._repository.get_series(base, target, years)
        except (DeviseError, ValueError) as e:
            if current is self._task:
                logger.warning(
                    "history_load_failed",
                    base=base,
                    target=target,
                    years=years,
                    error=str(e),
                )
                self.error.set(str(e) or "Failed to load history")
                self.loading.set(False)
            return
        except Exception:
            # background task boundary: nobody awaits this task's result
            logger.error("history_load_crashed", base=base, target=target, years=years, exc_info=True)
            if current is self._task:
                self.error.set("Unexpected error while loading history")
                self.loading.set(False)
            return

        if current is not self._task:
            return
        self.historical_points.set(sorted(series.points))
        self.loading.set(False)
        logger.debug("history_loaded", base=base, target=target, years=years, points=len(series.points))
