"""In-memory fakes and builders shared by unit and HTTP tests."""

import asyncio
from dataclasses import dataclass, field
from typing import Any

from tilestats.application.dtos.tile_stats import RequestContext, ViewerContext
from tilestats.application.services import (
    ConditionEvaluator,
    QueryDispatcher,
    StatAggregator,
    ValueFormatter,
    VariableResolver,
)
from tilestats.infrastructure.tile_config import (
    FileTileConfigLoader,
    tile_config_from_dict,
)

ORG_ID = "org-acme"
OTHER_ORG_ID = "org-globex"


@dataclass
class DataStoreCall:
    method: str
    table: str
    field: str | None
    filters: list[Any]


@dataclass
class FakeDataStore:
    """In-memory IStatsDataStore.

    results maps table -> value (or "table.field" for a specific column);
    delays maps table -> seconds; errors maps table -> exception to raise.
    """

    results: dict[str, Any] = field(default_factory=dict)
    delays: dict[str, float] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    rpc_result: Any = None
    calls: list[DataStoreCall] = field(default_factory=list)
    rpc_calls: list[tuple[str, dict[str, Any]]] = field(default_factory=list)

    async def _answer(self, method: str, table: str, field_name: str | None, filters: list[Any]) -> Any:
        self.calls.append(DataStoreCall(method, table, field_name, list(filters)))
        delay = self.delays.get(table)
        if delay:
            await asyncio.sleep(delay)
        if table in self.errors:
            raise self.errors[table]
        if field_name and f"{table}.{field_name}" in self.results:
            return self.results[f"{table}.{field_name}"]
        return self.results.get(table, 0)

    async def count(self, table: str, filters: list[Any]) -> int:
        return await self._answer("count", table, None, filters)

    async def aggregate(self, table: str, function: str, field_name: str, filters: list[Any]) -> Any:
        return await self._answer(function, table, field_name, filters)

    async def count_distinct(self, table: str, field_name: str, filters: list[Any]) -> int:
        return await self._answer("count_distinct", table, field_name, filters)

    async def call_rpc(self, function: str, params: dict[str, Any]) -> Any:
        self.rpc_calls.append((function, params))
        if "rpc" in self.errors:
            raise self.errors["rpc"]
        return self.rpc_result


class FakeCacheBackend:
    """Dict-backed ICacheService; records TTLs passed to set()."""

    def __init__(self, available: bool = True) -> None:
        self.available = available
        self.store: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}

    def is_available(self) -> bool:
        return self.available

    async def get(self, key: str) -> Any:
        return self.store.get(key)

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        self.store[key] = value
        self.ttls[key] = ttl
        return True


def sales_tile_document(**overrides: Any) -> dict[str, Any]:
    """Shared tile with four public stats and one private stat."""
    document: dict[str, Any] = {
        "tileId": "sales-overview",
        "ui": {"title": "Sales overview", "icon": "chart-bar"},
        "stats": [
            {
                "statId": "total_orders",
                "label": "Orders",
                "query": {"table": "orders", "operation": "count"},
            },
            {
                "statId": "revenue",
                "label": "Revenue",
                "format": "currency",
                "query": {
                    "table": "payments",
                    "operation": "sum",
                    "field": "amount",
                    "conditions": [{"field": "status", "operator": "eq", "value": "paid"}],
                },
            },
            {
                "statId": "customers",
                "label": "Customers",
                "query": {"table": "customers", "operation": "count_distinct", "field": "email"},
            },
            {
                "statId": "avg_ticket",
                "label": "Average ticket",
                "format": "currency",
                "query": {"table": "tickets", "operation": "avg", "field": "amount"},
            },
            {
                "statId": "margin",
                "label": "Margin",
                "format": "percentage",
                "isPrivate": True,
                "query": {"table": "margins", "operation": "avg", "field": "ratio"},
            },
        ],
    }
    document.update(overrides)
    return document


def make_tile_loader() -> FileTileConfigLoader:
    """Loader with the shared sales tile, an org-scoped tile, and a disabled tile."""
    return FileTileConfigLoader(
        [
            tile_config_from_dict(sales_tile_document()),
            tile_config_from_dict(
                {
                    "tileId": "acme-only",
                    "organizationId": ORG_ID,
                    "ui": {"title": "Acme"},
                    "stats": [
                        {
                            "statId": "tickets",
                            "label": "Tickets",
                            "query": {"table": "tickets", "operation": "count"},
                        }
                    ],
                }
            ),
            tile_config_from_dict(
                sales_tile_document(tileId="retired", enabled=False)
            ),
        ]
    )


def make_aggregator(data_store: FakeDataStore, *, timeout_seconds: float = 5.0) -> StatAggregator:
    resolver = VariableResolver()
    evaluator = ConditionEvaluator(resolver)
    dispatcher = QueryDispatcher(data_store, resolver, timeout_seconds=timeout_seconds)
    return StatAggregator(dispatcher, evaluator, ValueFormatter())


def make_context(
    organization_id: str = ORG_ID,
    *,
    permissions: tuple[str, ...] = (),
    **kwargs: Any,
) -> RequestContext:
    viewer = ViewerContext(user_id="user-1", role="analyst", permissions=permissions) if permissions else None
    return RequestContext.build(organization_id, viewer=viewer, **kwargs)




def make_regional_tile_loader() -> FileTileConfigLoader:
    """Loader with one tile whose stat filters on request variables."""
    return FileTileConfigLoader(
        [
            tile_config_from_dict(
                {
                    "tileId": "regional-orders",
                    "ui": {"title": "Regional orders"},
                    "stats": [
                        {
                            "statId": "orders_in_region",
                            "label": "Orders in region",
                            "query": {
                                "table": "orders",
                                "operation": "count",
                                "conditions": [
                                    {"field": "region", "operator": "eq", "value": "$var.region"},
                                    {"field": "tier", "operator": "in", "value": "$var.tiers"},
                                ],
                            },
                        }
                    ],
                }
            )
        ]
    )
