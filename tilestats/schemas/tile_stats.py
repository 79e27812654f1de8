"""Tile stats API schemas. JSON uses camelCase; attributes stay snake_case."""

from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)

from tilestats.application.dtos.tile_stats import (
    BatchMetadata,
    ResolvedStatResult,
    TileStatsResult,
    is_valid_variable_name,
)

VariableValue = str | int | float | bool | list[str | int | float | bool]


class StatErrorResponse(BaseModel):
    code: str
    message: str


class StatEntryResponse(BaseModel):
    """One stat. 'error' is only present for failed stats."""

    model_config = ConfigDict(populate_by_name=True)

    stat_id: str = Field(..., alias="statId")
    label: str
    value: Any = None
    formatted_value: str = Field(..., alias="formattedValue")
    format: str
    execution_time_ms: float = Field(..., alias="executionTime")
    error: StatErrorResponse | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_error(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        if data.get("error") is None:
            data.pop("error", None)
        return data

    @classmethod
    def from_result(cls, result: ResolvedStatResult) -> "StatEntryResponse":
        return cls(
            stat_id=result.stat_id,
            label=result.label,
            value=result.value,
            formatted_value=result.formatted_value,
            format=result.format.value,
            execution_time_ms=result.execution_time_ms,
            error=StatErrorResponse(**result.error) if result.error else None,
        )


class TileStatsMetadataResponse(BaseModel):
    """Batch-level execution summary."""

    model_config = ConfigDict(populate_by_name=True)

    tile_id: str = Field(..., alias="tileId")
    organization_id: str = Field(..., alias="organizationId")
    execution_time_ms: float = Field(..., alias="executionTime")
    total_stats: int = Field(..., alias="totalStats")
    successful_stats: int = Field(..., alias="successfulStats")
    failed_stats: int = Field(..., alias="failedStats")
    cached: bool = False

    @classmethod
    def from_metadata(cls, metadata: BatchMetadata) -> "TileStatsMetadataResponse":
        return cls(
            tile_id=metadata.tile_id,
            organization_id=metadata.organization_id,
            execution_time_ms=metadata.execution_time_ms,
            total_stats=metadata.total_stats,
            successful_stats=metadata.successful_stats,
            failed_stats=metadata.failed_stats,
            cached=metadata.cached,
        )


class TileStatsResponse(BaseModel):
    """Response for GET /tiles/{tile_id}/stats."""

    success: bool = True
    stats: list[StatEntryResponse]
    metadata: TileStatsMetadataResponse

    @classmethod
    def from_result(cls, result: TileStatsResult) -> "TileStatsResponse":
        return cls(
            stats=[StatEntryResponse.from_result(r) for r in result.stats],
            metadata=TileStatsMetadataResponse.from_metadata(result.metadata),
        )


class RefreshTileStatsResponse(TileStatsResponse):
    """Response for POST /tiles/{tile_id}/stats."""

    refreshed: bool = True

    @classmethod
    def from_result(cls, result: TileStatsResult) -> "RefreshTileStatsResponse":
        return cls(
            refreshed=result.refreshed,
            stats=[StatEntryResponse.from_result(r) for r in result.stats],
            metadata=TileStatsMetadataResponse.from_metadata(result.metadata),
        )


class RefreshTileStatsRequest(BaseModel):
    """Body for a forced refresh. forceRefresh must be present and true."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    organization_id: str = Field(..., min_length=1)
    force_refresh: bool = Field(..., alias="forceRefresh")
    time_range: str | None = Field(default=None, alias="timeRange")
    filter_by: str | None = Field(default=None, alias="filterBy")
    variables: dict[str, VariableValue] = Field(default_factory=dict)

    @field_validator("force_refresh")
    @classmethod
    def force_refresh_must_be_true(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("forceRefresh must be true")
        return v

    @field_validator("variables")
    @classmethod
    def variable_names_must_be_identifiers(
        cls, v: dict[str, VariableValue]
    ) -> dict[str, VariableValue]:
        bad = sorted(name for name in v if not is_valid_variable_name(name))
        if bad:
            raise ValueError(f"Invalid variable names: {', '.join(bad)}")
        return v
