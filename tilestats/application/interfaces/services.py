"""Service interfaces (ports) for the application layer.

Protocols define contracts that infrastructure implementations must fulfill (DIP).
No runtime imports from tilestats.infrastructure.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from tilestats.application.dtos.tile_stats import (
        RequestContext,
        ResolvedFilter,
        ResolvedStatResult,
    )
    from tilestats.domain.entities.tile import TileConfiguration


class IStatsDataStore(Protocol):
    """Read-only aggregate queries against the hosted data store.

    Implementations raise their own transport/HTTP errors; the query
    dispatcher converts them into QueryError.
    """

    async def count(self, table: str, filters: list[ResolvedFilter]) -> int:
        """Return the number of rows in table matching filters."""
        ...

    async def aggregate(
        self, table: str, function: str, field: str, filters: list[ResolvedFilter]
    ) -> Any:
        """Return sum/avg/min/max of field over rows matching filters (None when no rows)."""
        ...

    async def count_distinct(
        self, table: str, field: str, filters: list[ResolvedFilter]
    ) -> int:
        """Return the number of distinct non-null values of field."""
        ...

    async def call_rpc(self, function: str, params: dict[str, Any]) -> Any:
        """Invoke a remote procedure with bound named parameters; return its result."""
        ...


class ITileConfigLoader(Protocol):
    """Resolves a tile id to its declarative configuration."""

    async def get_tile_config(
        self, tile_id: str, organization_id: str
    ) -> TileConfiguration | None:
        """Return the tile for the organization, or None if missing or owned by another organization."""
        ...


class ITileStatsCache(Protocol):
    """Cache of resolved stats payloads, keyed by tile, organization, and request shape."""

    def is_available(self) -> bool:
        ...

    async def get_results(
        self, tile_id: str, context: RequestContext, stat_ids: list[str]
    ) -> list[ResolvedStatResult] | None:
        """Return cached results or None on miss/unavailable."""
        ...

    async def store_results(
        self,
        tile_id: str,
        context: RequestContext,
        stat_ids: list[str],
        results: list[ResolvedStatResult],
    ) -> bool:
        """Store results; return True if stored."""
        ...


class ICacheService(Protocol):
    """Protocol for cache backends (e.g. Redis) used for tile stats payloads."""

    def is_available(self) -> bool:
        """Return True if cache is connected and usable."""
        ...

    async def get(self, key: str) -> Any:
        """Return cached value or None."""
        ...

    async def set(self, key: str, value: Any, ttl: int = 300) -> bool:
        """Store value with TTL in seconds."""
        ...
