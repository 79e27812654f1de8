"""Application DTOs (no dependency on HTTP or data store types)."""

from tilestats.application.dtos.tile_stats import (
    BatchMetadata,
    QueryOutcome,
    RequestContext,
    ResolvedFilter,
    ResolvedStatResult,
    TileStatsResult,
    ViewerContext,
    is_valid_variable_name,
    parse_filter_by,
)

__all__ = [
    "BatchMetadata",
    "QueryOutcome",
    "RequestContext",
    "ResolvedFilter",
    "ResolvedStatResult",
    "TileStatsResult",
    "ViewerContext",
    "is_valid_variable_name",
    "parse_filter_by",
]
