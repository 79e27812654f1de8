"""Pydantic request/response schemas for the API."""

from tilestats.schemas.error import ErrorDetail, ErrorResponse
from tilestats.schemas.health import HealthResponse
from tilestats.schemas.tile_stats import (
    RefreshTileStatsRequest,
    RefreshTileStatsResponse,
    StatEntryResponse,
    StatErrorResponse,
    TileStatsMetadataResponse,
    TileStatsResponse,
)

__all__ = [
    "ErrorDetail",
    "ErrorResponse",
    "HealthResponse",
    "RefreshTileStatsRequest",
    "RefreshTileStatsResponse",
    "StatEntryResponse",
    "StatErrorResponse",
    "TileStatsMetadataResponse",
    "TileStatsResponse",
]
