"""FastAPI application factory for display clients."""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from devise.api import routes, ws
from devise.api.ws import ConverterHub
from devise.exceptions import (
    DeviseError,
    InvalidResponse,
    NetworkError,
    NotAuthenticated,
    UnknownCurrency,
    UnsupportedCurrency,
)

_STATUS_BY_ERROR: list[tuple[type[DeviseError], int]] = [
    (UnsupportedCurrency, 400),
    (UnknownCurrency, 400),
    (NotAuthenticated, 401),
    (NetworkError, 502),
    (InvalidResponse, 502),
]


async def _devise_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status = code
            break
    return JSONResponse(
        status_code=status,
        content={"error": str(exc), "type": type(exc).__name__},
    )


def create_app(lifespan: Any = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        lifespan: Optional async context manager for application lifespan events.
                  Used by main.py to connect and close the cache and HTTP clients.

    Returns:
        Application with JSON routes under /api and the WebSocket hub at /ws.
        Components (coordinator, history, repositories) are expected on
        ``app.state`` before the first request.
    """
    app = FastAPI(
        title="Devise Rate Engine",
        lifespan=lifespan,
    )

    app.state.hub = ConverterHub()

    app.add_exception_handler(DeviseError, _devise_error_handler)

    app.include_router(routes.router, prefix="/api")
    app.include_router(ws.router)

    return app
