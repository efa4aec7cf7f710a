"""JSON endpoints for the converter, history chart and rate cache."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from devise.currencies import LIVE_CURRENCIES, describe
from devise.models import HISTORY_SPANS, AmountField

log = structlog.get_logger(__name__)

router = APIRouter()

_CODE_PATTERN = r"^[A-Za-z]{3}$"


class AmountEdit(BaseModel):
    field: AmountField
    text: str = ""
    from_currency: str = Field(pattern=_CODE_PATTERN)
    to_currency: str = Field(pattern=_CODE_PATTERN)


class CurrencySelection(BaseModel):
    from_currency: str = Field(pattern=_CODE_PATTERN)
    to_currency: str = Field(pattern=_CODE_PATTERN)


class HistoryRequest(BaseModel):
    base: str = Field(pattern=_CODE_PATTERN)
    target: str = Field(pattern=_CODE_PATTERN)
    years: int = 1


class PeriodChange(BaseModel):
    years: int


def _span_error(years: int) -> JSONResponse | None:
    if years not in HISTORY_SPANS:
        return JSONResponse(
            status_code=422,
            content={"error": f"years must be one of {list(HISTORY_SPANS)}"},
        )
    return None


@router.get("/currencies")
async def get_currencies(request: Request) -> JSONResponse:
    """Ordered currency list with picker labels."""
    coordinator = request.app.state.coordinator
    codes = coordinator.currencies.value or list(LIVE_CURRENCIES)
    return JSONResponse(content=[{"code": code, "label": describe(code)} for code in codes])


@router.get("/converter")
async def get_converter(request: Request) -> JSONResponse:
    return JSONResponse(content=request.app.state.coordinator.snapshot())


@router.post("/converter/amount")
async def post_amount(request: Request, edit: AmountEdit) -> JSONResponse:
    """Apply an edit to one field and return the settled converter state."""
    coordinator = request.app.state.coordinator
    coordinator.on_amount_changed(
        edit.field,
        edit.text,
        edit.from_currency.upper(),
        edit.to_currency.upper(),
    )
    await coordinator.wait_settled()
    return JSONResponse(content=coordinator.snapshot())


@router.post("/converter/currencies")
async def post_currencies(request: Request, selection: CurrencySelection) -> JSONResponse:
    coordinator = request.app.state.coordinator
    coordinator.select_currencies(
        selection.from_currency.upper(), selection.to_currency.upper()
    )
    await coordinator.wait_settled()
    return JSONResponse(content=coordinator.snapshot())


@router.post("/converter/swap")
async def post_swap(request: Request) -> JSONResponse:
    coordinator = request.app.state.coordinator
    coordinator.swap()
    await coordinator.wait_settled()
    return JSONResponse(content=coordinator.snapshot())


@router.post("/converter/refresh")
async def post_refresh(request: Request) -> JSONResponse:
    """Pull-to-refresh: refetch rates regardless of cache age."""
    coordinator = request.app.state.coordinator
    coordinator.refresh()
    await coordinator.wait_settled()
    return JSONResponse(content=coordinator.snapshot())


@router.get("/rates")
async def get_rates(
    request: Request,
    base: str = Query("EUR", pattern=_CODE_PATTERN),
    refresh: bool = False,
) -> JSONResponse:
    """Current rate table for ``base`` (cache-first unless ``refresh``)."""
    table = await request.app.state.latest_repository.get_rates(base.upper(), force_refresh=refresh)
    return JSONResponse(content=table.to_dict())


@router.get("/history")
async def get_history(
    request: Request,
    base: str = Query(..., pattern=_CODE_PATTERN),
    target: str = Query(..., pattern=_CODE_PATTERN),
    years: int = 1,
) -> JSONResponse:
    """Raw cached or fetched series for one pair and span."""
    invalid = _span_error(years)
    if invalid is not None:
        return invalid
    series = await request.app.state.historical_repository.get_series(
        base.upper(), target.upper(), years
    )
    return JSONResponse(content=series.to_dict())


@router.post("/history/load")
async def post_history_load(request: Request, body: HistoryRequest) -> JSONResponse:
    invalid = _span_error(body.years)
    if invalid is not None:
        return invalid
    history = request.app.state.history
    history.load_history(body.base.upper(), body.target.upper(), body.years)
    await history.wait_settled()
    return JSONResponse(content=history.snapshot())


@router.post("/history/period")
async def post_history_period(request: Request, body: PeriodChange) -> JSONResponse:
    invalid = _span_error(body.years)
    if invalid is not None:
        return invalid
    history = request.app.state.history
    history.set_period(body.years)
    await history.wait_settled()
    return JSONResponse(content=history.snapshot())


@router.get("/cache")
async def get_cache_status(request: Request) -> JSONResponse:
    """Hit/miss counters and cached keys for the latest-rate cache."""
    manager = request.app.state.latest_repository.manager
    stats = manager.stats
    keys: list[str] = []
    try:
        keys = await manager.store.keys()
    except Exception:
        log.warning("cache_keys_unavailable", exc_info=True)

    content: dict[str, Any] = {
        "namespace": manager.store.namespace,
        "keys": keys,
        "hits": stats.hits,
        "misses": stats.misses,
        "fetches": stats.fetches,
        "read_errors": stats.read_errors,
        "write_errors": stats.write_errors,
    }
    return JSONResponse(content=content)
