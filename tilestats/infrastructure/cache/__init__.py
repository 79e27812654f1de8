"""Cache: Redis service, key builders, and the tile stats cache adapter."""

from tilestats.infrastructure.cache.keys import request_digest, tile_stats_key
from tilestats.infrastructure.cache.redis_cache import CacheService
from tilestats.infrastructure.cache.tile_stats_cache import TileStatsCache

__all__ = [
    "CacheService",
    "TileStatsCache",
    "request_digest",
    "tile_stats_key",
]
