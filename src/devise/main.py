"""Entry point for the rate engine service.

Wires all components together with explicit dependency injection and serves
the FastAPI surface through uvicorn. The cache database and both HTTP clients
are created once here and handed to the components that use them; nothing
is reachable as a module-level global.

Component wiring order (in build_components):
1. AppSettings (configuration)
2. Logging setup
3. CacheDatabase (shared SQLite handle)
4. HTTP clients (one per rate service)
5. OpenErApiClient / FrankfurterClient (rate sources)
6. LatestRateRepository (cache-first live rates)
7. HistoricalRateRepository (cache-first series, per-user namespace)
8. ConversionCoordinator (two-field converter state)
9. HistoryController (chart state)
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI

from devise.config import AppSettings
from devise.data.database import CacheDatabase
from devise.data.store import CacheStore
from devise.identity import StaticIdentityProvider
from devise.logging import get_logger, setup_logging
from devise.models import RateTable
from devise.rates.repositories import (
    LATEST_NAMESPACE,
    HistoricalRateRepository,
    LatestRateRepository,
)
from devise.sources.frankfurter_client import FrankfurterClient
from devise.sources.http import build_http_client
from devise.sources.open_er_client import OpenErApiClient
from devise.state.converter import ConversionCoordinator
from devise.state.history import HistoryController


def build_components(settings: AppSettings) -> dict[str, Any]:
    """Build all engine components from settings.

    Does NOT connect the database; that happens in the lifespan.

    Returns:
        Dict mapping component names to instances.
    """
    database = CacheDatabase(settings.cache.db_path)

    latest_source = OpenErApiClient(
        build_http_client(settings.latest.base_url, settings.latest.timeout_seconds)
    )
    series_source = FrankfurterClient(
        build_http_client(settings.historical.base_url, settings.historical.timeout_seconds)
    )

    identity = StaticIdentityProvider(settings.identity.user_id)

    latest_store: CacheStore[RateTable] = CacheStore(
        database, LATEST_NAMESPACE, RateTable.to_dict, RateTable.from_dict
    )
    latest_repository = LatestRateRepository(
        latest_source, latest_store, settings.cache.ttl_seconds
    )
    historical_repository = HistoricalRateRepository(
        series_source, database, identity, settings.cache.ttl_seconds
    )

    coordinator = ConversionCoordinator(latest_repository, settings.converter)
    history = HistoryController(historical_repository)

    return {
        "database": database,
        "latest_source": latest_source,
        "series_source": series_source,
        "identity": identity,
        "latest_repository": latest_repository,
        "historical_repository": historical_repository,
        "coordinator": coordinator,
        "history": history,
    }


async def shutdown_components(components: dict[str, Any]) -> None:
    """Cancel in-flight work, then close HTTP clients and the database."""
    await components["coordinator"].close()
    await components["history"].close()
    await components["latest_source"].close()
    await components["series_source"].close()
    await components["database"].close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Connect the cache, start the converter, and tear everything down on exit."""
    from devise.api.ws import StateBroadcaster

    logger = get_logger("devise.main")
    components = app.state.components

    app.state.coordinator = components["coordinator"]
    app.state.history = components["history"]
    app.state.latest_repository = components["latest_repository"]
    app.state.historical_repository = components["historical_repository"]

    await components["database"].connect()

    broadcaster = StateBroadcaster(components["coordinator"], app.state.hub)
    broadcaster.start()

    # Populate currencies and the default conversion; failures land on `error`
    await components["coordinator"].start()

    logger.info("lifespan_started", base_currency=app.state.settings.converter.base_currency)

    yield

    await broadcaster.stop()
    await shutdown_components(components)
    logger.info("devise_stopped")


async def run() -> None:
    """Run the rate engine service.

    With the API enabled (API_ENABLED=true, the default) the engine is served
    by uvicorn. With it disabled, the converter is started once, its state is
    logged and the process exits; useful for warming the cache from cron.
    """
    settings = AppSettings()

    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("devise.main")

    components = build_components(settings)

    if settings.api.enabled:
        from devise.api.app import create_app

        app = create_app(lifespan=lifespan)
        app.state.settings = settings
        app.state.components = components

        logger.info("starting_api", host=settings.api.host, port=settings.api.port)

        config = uvicorn.Config(
            app,
            host=settings.api.host,
            port=settings.api.port,
            log_level="warning",
        )
        server = uvicorn.Server(config)
        await server.serve()
    else:
        try:
            await components["database"].connect()
            coordinator = components["coordinator"]
            await coordinator.start()
            logger.info("converter_ready", **coordinator.snapshot())
        finally:
            await shutdown_components(components)
            logger.info("devise_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
