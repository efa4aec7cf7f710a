"""Shared httpx transport helpers for the rate source clients.

One AsyncClient per remote service is built at startup and injected into its
client. Transport errors and timeouts are translated to NetworkError here so
the concrete clients only deal with payload shape.
"""

from typing import Any

import httpx

from devise.exceptions import InvalidResponse, NetworkError
from devise.logging import get_logger

logger = get_logger(__name__)


def build_http_client(base_url: str, timeout_seconds: float) -> httpx.AsyncClient:
    """Create an AsyncClient with a fixed connect/read timeout for one service."""
    return httpx.AsyncClient(
        base_url=base_url,
        timeout=httpx.Timeout(timeout_seconds),
        headers={"Accept": "application/json"},
    )


async def get_json(
    client: httpx.AsyncClient,
    path: str,
    params: dict[str, str] | None = None,
) -> tuple[int, Any]:
    """GET ``path`` and return ``(status_code, decoded_json)``.

    Status codes are returned rather than raised because some services put a
    meaningful error body on 4xx responses. Raises NetworkError on timeout or
    transport failure and InvalidResponse if the body is not JSON.
    """
    try:
        response = await client.get(path, params=params)
    except httpx.TimeoutException as e:
        logger.warning("rate_request_timeout", path=path, error=str(e))
        raise NetworkError(f"Request timed out: {path}") from e
    except httpx.RequestError as e:
        logger.warning("rate_request_failed", path=path, error=str(e))
        raise NetworkError(f"Network error: {e}") from e

    try:
        payload = response.json()
    except ValueError as e:
        logger.warning(
            "rate_response_not_json",
            path=path,
            status=response.status_code,
        )
        raise InvalidResponse(
            f"Non-JSON response from {path} (HTTP {response.status_code})"
        ) from e

    return response.status_code, payload
