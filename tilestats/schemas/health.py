"""Health check API schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class HealthResponse(BaseModel):
    """Response for GET /health (liveness plus component state)."""

    model_config = ConfigDict(populate_by_name=True)

    status: str = Field(default="ok", description="Service status")
    version: str | None = Field(default=None, description="Service version")
    data_store: Literal["configured", "not_configured"] = Field(
        default="not_configured", alias="dataStore"
    )
    tile_config_source: str = Field(default="file", alias="tileConfigSource")
    cache: Literal["available", "unavailable", "disabled"] = "disabled"
