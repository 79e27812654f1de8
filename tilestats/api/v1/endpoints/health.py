"""Health check endpoint for liveness probes.

Always 200 while the process serves requests; component fields tell an
operator whether stats can actually be resolved.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from tilestats.core.config import Settings, get_settings
from tilestats.schemas.health import HealthResponse

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> HealthResponse:
    state = request.app.state
    cache = getattr(state, "cache", None)
    if cache is None:
        cache_status = "disabled"
    else:
        cache_status = "available" if cache.is_available() else "unavailable"
    return HealthResponse(
        version=settings.app_version,
        data_store="configured" if getattr(state, "data_store", None) else "not_configured",
        tile_config_source=settings.tile_config_source,
        cache=cache_status,
    )
