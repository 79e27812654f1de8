"""Pytest configuration and fixtures for tilestats.

HTTP tests run against tilestats.main:app through httpx's ASGITransport
(the lifespan does not run); the data store, tile config loader, and
cache are replaced through app.dependency_overrides with in-memory fakes
from tests.fakes.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-tilestats-only")
os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("TELEMETRY_ENABLED", "false")

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from tilestats.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from tilestats.api.v1.dependencies import (  # noqa: E402
    get_data_store,
    get_stats_cache,
    get_tile_config_loader,
)
from tilestats.core.limiter import limiter  # noqa: E402
from tilestats.infrastructure.cache import TileStatsCache  # noqa: E402
from tilestats.infrastructure.tile_config import FileTileConfigLoader  # noqa: E402
from tilestats.main import app  # noqa: E402
from tests.fakes import FakeCacheBackend, FakeDataStore, make_tile_loader  # noqa: E402


@pytest.fixture
def data_store() -> FakeDataStore:
    return FakeDataStore(
        results={
            "orders": 1234567,
            "payments": 1234.56,
            "customers": 42,
            "tickets": 12.5,
            "margins": 0.1234,
        }
    )


@pytest.fixture
def tile_loader() -> FileTileConfigLoader:
    return make_tile_loader()


@pytest.fixture
def cache_backend() -> FakeCacheBackend | None:
    """Override in a test module to enable caching for HTTP tests."""
    return None


@pytest.fixture
async def client(
    data_store: FakeDataStore,
    tile_loader: FileTileConfigLoader,
    cache_backend: FakeCacheBackend | None,
) -> AsyncClient:
    """Async HTTP client against the FastAPI app (ASGI) with fake infrastructure."""
    stats_cache = TileStatsCache(cache_backend, ttl=60) if cache_backend is not None else None
    app.dependency_overrides[get_data_store] = lambda: data_store
    app.dependency_overrides[get_tile_config_loader] = lambda: tile_loader
    app.dependency_overrides[get_stats_cache] = lambda: stats_cache
    limiter.reset()
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()

