"""Application use cases."""

from tilestats.application.use_cases.tile_stats import TileStatsUseCase

__all__ = ["TileStatsUseCase"]
