"""Tests for the tile stats use case: lookup, visibility, caching, refresh."""

import pytest

from tilestats.application.dtos.tile_stats import RequestContext, ViewerContext
from tilestats.application.use_cases import TileStatsUseCase
from tilestats.domain.exceptions import DataStoreError, TileNotFoundException
from tilestats.infrastructure.cache import TileStatsCache
from tilestats.infrastructure.tile_config import FileTileConfigLoader, tile_config_from_dict
from tests.fakes import (
    ORG_ID,
    OTHER_ORG_ID,
    FakeCacheBackend,
    FakeDataStore,
    make_aggregator,
    make_context,
    make_tile_loader,
    sales_tile_document,
)


@pytest.fixture
def store() -> FakeDataStore:
    return FakeDataStore(
        results={"orders": 5, "payments": 10.0, "customers": 3, "tickets": 2.5, "margins": 0.2}
    )


@pytest.fixture
def backend() -> FakeCacheBackend:
    return FakeCacheBackend()


@pytest.fixture
def use_case(store: FakeDataStore, backend: FakeCacheBackend) -> TileStatsUseCase:
    return TileStatsUseCase(
        make_tile_loader(), make_aggregator(store), TileStatsCache(backend, ttl=60)
    )


async def test_unknown_tile_raises_not_found(use_case: TileStatsUseCase) -> None:
    with pytest.raises(TileNotFoundException) as exc_info:
        await use_case.get_stats("does-not-exist", make_context())
    assert exc_info.value.error_code == "TILE_NOT_FOUND"


async def test_tile_of_another_organization_is_not_found(use_case: TileStatsUseCase) -> None:
    with pytest.raises(TileNotFoundException):
        await use_case.get_stats("acme-only", make_context(OTHER_ORG_ID))


async def test_returns_one_entry_per_visible_stat(use_case: TileStatsUseCase) -> None:
    result = await use_case.get_stats("sales-overview", make_context())

    ids = [s.stat_id for s in result.stats]
    assert ids == ["total_orders", "revenue", "customers", "avg_ticket"]
    assert len(set(ids)) == len(ids)
    assert result.metadata.total_stats == 4
    assert result.metadata.successful_stats == 4
    assert result.metadata.tile_id == "sales-overview"
    assert result.metadata.organization_id == ORG_ID


async def test_disabled_tile_returns_empty_stats(use_case: TileStatsUseCase, store: FakeDataStore) -> None:
    result = await use_case.get_stats("retired", make_context())
    assert result.stats == []
    assert result.metadata.total_stats == 0
    assert store.calls == []


async def test_tile_conditions_gate_all_stats(store: FakeDataStore) -> None:
    loader = FileTileConfigLoader(
        [
            tile_config_from_dict(
                sales_tile_document(
                    conditions=[{"field": "user.role", "operator": "equals", "value": "admin"}]
                )
            )
        ]
    )
    use_case = TileStatsUseCase(loader, make_aggregator(store))

    result = await use_case.get_stats("sales-overview", make_context())

    assert result.stats == []


async def test_second_read_is_served_from_cache(
    use_case: TileStatsUseCase, store: FakeDataStore, backend: FakeCacheBackend
) -> None:
    first = await use_case.get_stats("sales-overview", make_context(time_range="7d"))
    calls_after_first = len(store.calls)
    second = await use_case.get_stats("sales-overview", make_context(time_range="7d"))

    assert first.metadata.cached is False
    assert second.metadata.cached is True
    assert len(store.calls) == calls_after_first
    assert [s.value for s in second.stats] == [s.value for s in first.stats]
    assert set(backend.ttls.values()) == {60}


async def test_cache_key_depends_on_time_range(
    use_case: TileStatsUseCase, store: FakeDataStore
) -> None:
    await use_case.get_stats("sales-overview", make_context(time_range="7d"))
    result = await use_case.get_stats("sales-overview", make_context(time_range="30d"))
    assert result.metadata.cached is False


async def test_use_cache_false_skips_cache(
    use_case: TileStatsUseCase, store: FakeDataStore
) -> None:
    await use_case.get_stats("sales-overview", make_context())
    result = await use_case.get_stats("sales-overview", make_context(), use_cache=False)
    assert result.metadata.cached is False


async def test_batches_with_failures_are_not_cached(
    use_case: TileStatsUseCase, store: FakeDataStore, backend: FakeCacheBackend
) -> None:
    store.errors["payments"] = DataStoreError("QUERY_FAILED", "boom")

    result = await use_case.get_stats("sales-overview", make_context())

    assert result.metadata.failed_stats == 1
    assert backend.store == {}


async def test_refresh_bypasses_and_overwrites_cache(
    use_case: TileStatsUseCase, store: FakeDataStore
) -> None:
    await use_case.get_stats("sales-overview", make_context())
    store.results["orders"] = 99

    refreshed = await use_case.refresh_stats("sales-overview", make_context())
    after = await use_case.get_stats("sales-overview", make_context())

    assert refreshed.refreshed is True
    assert refreshed.metadata.cached is False
    assert refreshed.stats[0].value == 99
    assert after.metadata.cached is True
    assert after.stats[0].value == 99


async def test_unavailable_cache_reports_not_cached(store: FakeDataStore) -> None:
    use_case = TileStatsUseCase(
        make_tile_loader(),
        make_aggregator(store),
        TileStatsCache(FakeCacheBackend(available=False)),
    )
    await use_case.get_stats("sales-overview", make_context())
    result = await use_case.get_stats("sales-overview", make_context())
    assert result.metadata.cached is False


def _my_tasks_loader() -> FileTileConfigLoader:
    return FileTileConfigLoader(
        [
            tile_config_from_dict(
                {
                    "tileId": "my-tasks",
                    "ui": {"title": "My tasks"},
                    "stats": [
                        {
                            "statId": "open_tasks",
                            "label": "Open tasks",
                            "query": {
                                "table": "tasks",
                                "operation": "count",
                                "conditions": [
                                    {"field": "assignee_id", "operator": "eq", "value": "$user_id"},
                                    {"field": "priority", "operator": "eq", "value": "$var.priority"},
                                ],
                            },
                        }
                    ],
                }
            )
        ]
    )


def _viewer_context(user_id: str, **variables: object) -> RequestContext:
    return RequestContext.build(
        ORG_ID, viewer=ViewerContext(user_id=user_id), variables=variables or None
    )


async def test_viewer_dependent_stats_are_cached_per_viewer(
    store: FakeDataStore, backend: FakeCacheBackend
) -> None:
    use_case = TileStatsUseCase(
        _my_tasks_loader(), make_aggregator(store), TileStatsCache(backend)
    )
    store.results["tasks"] = 3
    alice = await use_case.get_stats("my-tasks", _viewer_context("alice"))
    store.results["tasks"] = 99
    bob = await use_case.get_stats("my-tasks", _viewer_context("bob"))
    alice_again = await use_case.get_stats("my-tasks", _viewer_context("alice"))

    assert alice.stats[0].value == 3
    assert bob.stats[0].value == 99
    assert bob.metadata.cached is False
    assert alice_again.metadata.cached is True
    assert alice_again.stats[0].value == 3
    assignees = [
        f.value for call in store.calls for f in call.filters if f.field == "assignee_id"
    ]
    assert assignees == ["alice", "bob"]


async def test_request_variables_are_part_of_cache_key(
    store: FakeDataStore, backend: FakeCacheBackend
) -> None:
    use_case = TileStatsUseCase(
        _my_tasks_loader(), make_aggregator(store), TileStatsCache(backend)
    )
    await use_case.get_stats("my-tasks", _viewer_context("alice", priority="high"))
    low = await use_case.get_stats("my-tasks", _viewer_context("alice", priority="low"))

    assert low.metadata.cached is False
    assert len(backend.store) == 2
