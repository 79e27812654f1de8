"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (shared HTTP client, data store,
tile config loader, cache, telemetry).
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI

from tilestats.core.config import get_settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: shared HTTP client, data store, tile config loader,
    Redis cache (if enabled), telemetry (if enabled). Shutdown runs in
    reverse.
    """
    settings = get_settings()

    # ---- Startup ----
    # One connection pool for every stat query of every request.
    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.query_timeout_seconds),
        limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
    )

    from tilestats.infrastructure.datastore import get_data_store, init_data_store

    init_data_store(app.state.http_client)
    app.state.data_store = get_data_store()

    if settings.tile_config_source == "datastore":
        from tilestats.infrastructure.tile_config import DataStoreTileConfigLoader

        app.state.tile_config_loader = DataStoreTileConfigLoader(
            app.state.data_store, settings.tile_config_table
        )
    else:
        from tilestats.infrastructure.tile_config import FileTileConfigLoader

        app.state.tile_config_loader = FileTileConfigLoader.from_directory(
            settings.tile_config_path
        )

    if settings.redis_enabled:
        from tilestats.infrastructure.cache import CacheService

        cache = CacheService()
        await cache.connect()
        app.state.cache = cache
    else:
        app.state.cache = None

    if settings.telemetry_enabled:
        from tilestats.shared.telemetry.telemetry import Telemetry, set_telemetry

        telemetry = Telemetry.from_settings(settings)
        if telemetry is not None:
            telemetry.instrument(app)
            set_telemetry(telemetry)

    yield

    # ---- Shutdown ----
    if getattr(app.state, "cache", None) is not None:
        await app.state.cache.disconnect()
        logger.info("Cache disconnected")

    from tilestats.infrastructure.datastore import close_data_store

    close_data_store()
    if getattr(app.state, "http_client", None) is not None:
        await app.state.http_client.aclose()
        app.state.http_client = None
        logger.info("Data store HTTP client closed")

    from tilestats.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown(app)
        set_telemetry(None)
        logger.info("Telemetry shutdown complete")
