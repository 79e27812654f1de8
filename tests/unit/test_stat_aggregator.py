"""Tests for concurrent stat resolution, partial failure, and visibility filtering."""

import time

from tilestats.application.dtos.tile_stats import ResolvedStatResult
from tilestats.application.services.stat_aggregator import StatAggregator
from tilestats.domain.entities.tile import FilterCondition, QuerySpecification, StatDeclaration
from tilestats.domain.enums import QueryOperation, StatFormat
from tilestats.domain.exceptions import DataStoreError
from tests.fakes import FakeDataStore, make_aggregator, make_context


def _stat(stat_id: str, table: str, **kwargs: object) -> StatDeclaration:
    return StatDeclaration(
        stat_id=stat_id,
        label=stat_id.title(),
        query=QuerySpecification(table=table, operation=QueryOperation.COUNT),
        **kwargs,  # type: ignore[arg-type]
    )


async def test_stats_run_in_parallel() -> None:
    store = FakeDataStore(
        results={"a": 1, "b": 2, "c": 3},
        delays={"a": 0.2, "b": 0.2, "c": 0.2},
    )
    aggregator = make_aggregator(store)
    stats = [_stat("a", "a"), _stat("b", "b"), _stat("c", "c")]

    started = time.perf_counter()
    results = await aggregator.run_all(stats, make_context())
    elapsed = time.perf_counter() - started

    assert [r.value for r in results] == [1, 2, 3]
    # Wall clock tracks the slowest query, not the sum of all three.
    assert elapsed < 0.45


async def test_one_failure_does_not_affect_siblings() -> None:
    store = FakeDataStore(
        results={"a": 1, "c": 3},
        errors={"b": DataStoreError("QUERY_FAILED", "boom")},
    )
    aggregator = make_aggregator(store)

    results = await aggregator.run_all(
        [_stat("a", "a"), _stat("b", "b"), _stat("c", "c")], make_context()
    )

    assert [r.stat_id for r in results] == ["a", "b", "c"]
    failed = results[1]
    assert failed.value is None
    assert failed.formatted_value == "Error"
    assert failed.error == {"code": "QUERY_FAILED", "message": "Stat query failed"}
    assert results[0].error is None and results[2].error is None


async def test_all_failures_still_return_an_entry_per_stat() -> None:
    error = DataStoreError("NETWORK_ERROR", "connection refused")
    store = FakeDataStore(errors={"a": error, "b": error})
    aggregator = make_aggregator(store)

    results = await aggregator.run_all([_stat("a", "a"), _stat("b", "b")], make_context())

    assert len(results) == 2
    assert all(r.error and r.error["code"] == "NETWORK_ERROR" for r in results)


async def test_unexpected_exception_becomes_internal_error() -> None:
    store = FakeDataStore(results={"a": 1, "b": 2})
    aggregator = make_aggregator(store)
    original = aggregator.dispatcher.execute

    async def flaky(spec, context, *, stat_id=None):  # type: ignore[no-untyped-def]
        if stat_id == "b":
            raise RuntimeError("bug")
        return await original(spec, context, stat_id=stat_id)

    aggregator.dispatcher.execute = flaky  # type: ignore[method-assign]

    results = await aggregator.run_all([_stat("a", "a"), _stat("b", "b")], make_context())

    assert results[0].value == 1
    assert results[1].error == {"code": "INTERNAL_ERROR", "message": "Stat could not be computed"}


async def test_private_stats_require_permission() -> None:
    store = FakeDataStore(results={"a": 1, "secret": 2})
    aggregator = make_aggregator(store)
    stats = [_stat("a", "a"), _stat("secret", "secret", is_private=True)]

    anonymous = await aggregator.run_all(stats, make_context())
    privileged = await aggregator.run_all(stats, make_context(permissions=("stats.read",)))

    assert [r.stat_id for r in anonymous] == ["a"]
    assert [r.stat_id for r in privileged] == ["a", "secret"]


async def test_stat_conditions_filter_stats() -> None:
    store = FakeDataStore(results={"a": 1, "b": 2})
    aggregator = make_aggregator(store)
    stats = [
        _stat("a", "a"),
        _stat("b", "b", conditions=(FilterCondition("request.time_range", "equals", "ytd"),)),
    ]

    results = await aggregator.run_all(stats, make_context(time_range="7d"))

    assert [r.stat_id for r in results] == ["a"]
    assert [c.table for c in store.calls] == ["a"]


async def test_values_are_formatted_per_stat() -> None:
    store = FakeDataStore(results={"a": 1234.5})
    aggregator = make_aggregator(store)
    stat = StatDeclaration(
        stat_id="revenue",
        label="Revenue",
        query=QuerySpecification(table="a", operation=QueryOperation.SUM, field="amount"),
        format=StatFormat.CURRENCY,
    )

    (result,) = await aggregator.run_all([stat], make_context())

    assert result.formatted_value == "$1,234.50"
    assert result.format is StatFormat.CURRENCY


def test_summarize_counts_successes_and_failures() -> None:
    ok = ResolvedStatResult("a", "A", 1, "1", StatFormat.NUMBER, 1.0)
    failed = ResolvedStatResult(
        "b", "B", None, "Error", StatFormat.NUMBER, 0.0, {"code": "QUERY_FAILED", "message": "x"}
    )

    metadata = StatAggregator.summarize(
        [ok, failed], tile_id="t", organization_id="org-acme", execution_time_ms=12.5
    )

    assert metadata.total_stats == 2
    assert metadata.successful_stats == 1
    assert metadata.failed_stats == 1
    assert metadata.execution_time_ms == 12.5
    assert metadata.cached is False


async def test_timed_out_stat_reports_time_spent() -> None:
    store = FakeDataStore(results={"slow": 1, "fast": 2}, delays={"slow": 0.5})
    aggregator = make_aggregator(store, timeout_seconds=0.1)

    slow, fast = await aggregator.run_all([_stat("slow", "slow"), _stat("fast", "fast")], make_context())

    assert slow.error is not None and slow.error["code"] == "QUERY_TIMEOUT"
    assert slow.execution_time_ms >= 90
    assert fast.succeeded
