"""ITileStatsCache on top of a generic key/value cache service."""

from __future__ import annotations

import logging

from tilestats.application.dtos.tile_stats import RequestContext, ResolvedStatResult
from tilestats.application.interfaces.services import ICacheService
from tilestats.infrastructure.cache.keys import request_digest, tile_stats_key

logger = logging.getLogger(__name__)


class TileStatsCache:
    """Stores stat batches as lists of response dicts under a per-request-shape key."""

    def __init__(self, cache: ICacheService, ttl: int = 60) -> None:
        self.cache = cache
        self.ttl = ttl

    def is_available(self) -> bool:
        return self.cache.is_available()

    def _key(self, tile_id: str, context: RequestContext, stat_ids: list[str]) -> str | None:
        try:
            return tile_stats_key(
                context.organization_id,
                tile_id,
                request_digest(
                    context.time_range,
                    context.filter_by,
                    stat_ids,
                    user_id=context.viewer.user_id,
                    variables=context.variables,
                ),
            )
        except ValueError:
            logger.debug("Tile %s not cacheable: key component contains separator", tile_id)
            return None

    async def get_results(
        self, tile_id: str, context: RequestContext, stat_ids: list[str]
    ) -> list[ResolvedStatResult] | None:
        key = self._key(tile_id, context, stat_ids)
        if key is None:
            return None
        payload = await self.cache.get(key)
        if not isinstance(payload, list):
            return None
        try:
            results = [ResolvedStatResult.from_dict(item) for item in payload]
        except (KeyError, TypeError, ValueError):
            logger.warning("Discarding malformed cache entry %s", key)
            return None
        # Entries for a different stat set are never served.
        if [r.stat_id for r in results] != list(stat_ids):
            return None
        return results

    async def store_results(
        self,
        tile_id: str,
        context: RequestContext,
        stat_ids: list[str],
        results: list[ResolvedStatResult],
    ) -> bool:
        key = self._key(tile_id, context, stat_ids)
        if key is None:
            return False
        return await self.cache.set(key, [r.to_dict() for r in results], ttl=self.ttl)
