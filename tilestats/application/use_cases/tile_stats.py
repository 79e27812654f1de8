"""Tile stats use cases: read (cache-aware) and forced refresh.

Both share one pipeline: load tile config, filter applicable stats,
resolve them concurrently, summarize. Read may short-circuit on a cache
hit; refresh never reads the cache but overwrites its entry.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING

from tilestats.application.dtos.tile_stats import (
    RequestContext,
    ResolvedStatResult,
    TileStatsResult,
)
from tilestats.domain.exceptions import TileNotFoundException

if TYPE_CHECKING:
    from tilestats.application.interfaces.services import (
        ITileConfigLoader,
        ITileStatsCache,
    )
    from tilestats.application.services.stat_aggregator import StatAggregator
    from tilestats.domain.entities.tile import StatDeclaration, TileConfiguration

logger = logging.getLogger(__name__)


class TileStatsUseCase:
    """Resolve the stats of one tile for one organization."""

    def __init__(
        self,
        config_loader: "ITileConfigLoader",
        aggregator: "StatAggregator",
        cache: "ITileStatsCache | None" = None,
    ) -> None:
        self.config_loader = config_loader
        self.aggregator = aggregator
        self.cache = cache

    async def get_stats(
        self, tile_id: str, context: RequestContext, *, use_cache: bool = True
    ) -> TileStatsResult:
        """Return stats for the tile; serve from cache when allowed and present.

        Raises:
            TileNotFoundException: If the tile does not exist for the organization.
        """
        started = time.perf_counter()
        tile = await self._load_tile(tile_id, context)
        stats = self._applicable_stats(tile, context)
        stat_ids = [stat.stat_id for stat in stats]

        if use_cache and stats and self._cache_ready():
            cached = await self.cache.get_results(tile_id, context, stat_ids)  # type: ignore[union-attr]
            if cached is not None:
                logger.debug("Serving tile %s stats from cache", tile_id)
                return self._result(tile_id, context, cached, started, cached=True)

        results = await self.aggregator.run_stats(stats, context)
        if use_cache:
            await self._store(tile_id, context, stat_ids, results)
        return self._result(tile_id, context, results, started)

    async def refresh_stats(
        self, tile_id: str, context: RequestContext
    ) -> TileStatsResult:
        """Recompute every stat, bypassing the cache, then overwrite the cache entry.

        Raises:
            TileNotFoundException: If the tile does not exist for the organization.
        """
        started = time.perf_counter()
        tile = await self._load_tile(tile_id, context)
        stats = self._applicable_stats(tile, context)
        results = await self.aggregator.run_stats(stats, context)
        await self._store(tile_id, context, [stat.stat_id for stat in stats], results)
        result = self._result(tile_id, context, results, started)
        result.refreshed = True
        logger.info(
            "Refreshed tile %s: %s/%s stats succeeded",
            tile_id,
            result.metadata.successful_stats,
            result.metadata.total_stats,
        )
        return result

    async def _load_tile(
        self, tile_id: str, context: RequestContext
    ) -> "TileConfiguration":
        tile = await self.config_loader.get_tile_config(tile_id, context.organization_id)
        if tile is None or not tile.is_visible_to(context.organization_id):
            raise TileNotFoundException(tile_id)
        return tile

    def _applicable_stats(
        self, tile: "TileConfiguration", context: RequestContext
    ) -> list["StatDeclaration"]:
        if not tile.enabled:
            return []
        if not self.aggregator.evaluator.evaluate(tile.conditions, context):
            logger.debug("Tile %s conditions not met for this request", tile.tile_id)
            return []
        return self.aggregator.applicable_stats(tile.stats, context)

    def _cache_ready(self) -> bool:
        return self.cache is not None and self.cache.is_available()

    async def _store(
        self,
        tile_id: str,
        context: RequestContext,
        stat_ids: list[str],
        results: list[ResolvedStatResult],
    ) -> None:
        # Failed batches are not cached so the next read retries them.
        if not results or not self._cache_ready():
            return
        if any(not result.succeeded for result in results):
            return
        await self.cache.store_results(tile_id, context, stat_ids, results)  # type: ignore[union-attr]

    def _result(
        self,
        tile_id: str,
        context: RequestContext,
        results: list[ResolvedStatResult],
        started: float,
        *,
        cached: bool = False,
    ) -> TileStatsResult:
        elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
        metadata = self.aggregator.summarize(
            results,
            tile_id=tile_id,
            organization_id=context.organization_id,
            execution_time_ms=elapsed_ms,
            cached=cached,
        )
        return TileStatsResult(stats=results, metadata=metadata)
