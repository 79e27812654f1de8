"""Tile stats endpoints: cache-aware read (GET) and forced refresh (POST).

Individual stat failures never fail the request; they come back as stat
entries with an error object. Request-level problems (organization id,
body, unknown tile) are raised as domain exceptions and rendered by
tilestats.core.exception_handlers.
"""

import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request
from fastapi.encoders import jsonable_encoder
from pydantic import ValidationError

from tilestats.api.v1.dependencies import (
    build_request_context,
    get_query_organization_id,
    get_request_variables,
    get_tile_stats_use_case,
    get_viewer,
    validate_organization_id,
)
from tilestats.application.dtos.tile_stats import ViewerContext
from tilestats.application.use_cases import TileStatsUseCase
from tilestats.core.limiter import limit_refresh
from tilestats.domain.exceptions import (
    InvalidOrganizationIdException,
    InvalidRequestBodyException,
    MissingOrganizationIdException,
)
from tilestats.schemas.error import ErrorResponse
from tilestats.schemas.tile_stats import (
    RefreshTileStatsRequest,
    RefreshTileStatsResponse,
    TileStatsResponse,
)

router = APIRouter()

_ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorResponse, "description": "Missing/invalid organization id or request"},
    401: {"model": ErrorResponse, "description": "Invalid bearer token"},
    403: {"model": ErrorResponse, "description": "Token belongs to another organization"},
    404: {"model": ErrorResponse, "description": "Tile not found for the organization"},
}


@router.get(
    "/{tile_id}/stats",
    response_model=TileStatsResponse,
    responses=_ERROR_RESPONSES,
)
async def get_tile_stats(
    tile_id: str,
    organization_id: Annotated[str, Depends(get_query_organization_id)],
    viewer: Annotated[ViewerContext, Depends(get_viewer)],
    variables: Annotated[dict[str, Any], Depends(get_request_variables)],
    use_case: Annotated[TileStatsUseCase, Depends(get_tile_stats_use_case)],
    time_range: Annotated[str | None, Query(alias="timeRange")] = None,
    filter_by: Annotated[str | None, Query(alias="filterBy")] = None,
    use_cache: Annotated[bool, Query(alias="useCache")] = True,
) -> TileStatsResponse:
    """Resolve every applicable stat of the tile for the organization.

    Query parameters named var.<name> feed '$var.<name>' placeholders.
    """
    context = build_request_context(
        organization_id,
        viewer,
        time_range=time_range,
        filter_by=filter_by,
        variables=variables,
    )
    result = await use_case.get_stats(tile_id, context, use_cache=use_cache)
    return TileStatsResponse.from_result(result)


async def _read_refresh_body(request: Request) -> RefreshTileStatsRequest:
    """Parse the refresh body by hand so every failure maps to a stable code."""
    raw = await request.body()
    if not raw.strip():
        raise InvalidRequestBodyException("Request body is required")
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise InvalidRequestBodyException("Request body must be valid JSON") from None
    if not isinstance(data, dict):
        raise InvalidRequestBodyException("Request body must be a JSON object")

    organization_id = data.get("organization_id")
    if organization_id is None or (
        isinstance(organization_id, str) and not organization_id.strip()
    ):
        raise MissingOrganizationIdException()
    if not isinstance(organization_id, str):
        raise InvalidOrganizationIdException()

    try:
        return RefreshTileStatsRequest.model_validate(data)
    except ValidationError as e:
        raise InvalidRequestBodyException(
            "Request body is invalid",
            jsonable_encoder(e.errors(include_url=False, include_context=False)),
        ) from None


@router.post(
    "/{tile_id}/stats",
    response_model=RefreshTileStatsResponse,
    responses={**_ERROR_RESPONSES, 429: {"model": ErrorResponse, "description": "Rate limited"}},
)
@limit_refresh
async def refresh_tile_stats(
    request: Request,
    tile_id: str,
    viewer: Annotated[ViewerContext, Depends(get_viewer)],
    use_case: Annotated[TileStatsUseCase, Depends(get_tile_stats_use_case)],
) -> RefreshTileStatsResponse:
    """Recompute every applicable stat, bypassing and then overwriting the cache.

    Body: {"organization_id": str, "forceRefresh": true, "timeRange"?: str, "filterBy"?: str,
    "variables"?: {name: scalar or list}}
    """
    body = await _read_refresh_body(request)
    organization_id = validate_organization_id(body.organization_id)
    context = build_request_context(
        organization_id,
        viewer,
        time_range=body.time_range,
        filter_by=body.filter_by,
        variables=body.variables,
    )
    result = await use_case.refresh_stats(tile_id, context)
    return RefreshTileStatsResponse.from_result(result)
