"""Presentation-layer dependency injection (composition root).

Provides FastAPI Depends() for the tile stats use case and the per-request
context. Use cases are built from infrastructure implementations here;
routes depend only on these dependencies, not on infra directly. Tests
replace get_data_store / get_tile_config_loader / get_stats_cache through
app.dependency_overrides.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import Depends, Query, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from tilestats.application.dtos.tile_stats import (
    RequestContext,
    ViewerContext,
    is_valid_variable_name,
)
from tilestats.application.interfaces.services import (
    IStatsDataStore,
    ITileConfigLoader,
    ITileStatsCache,
)
from tilestats.application.services import (
    ConditionEvaluator,
    QueryDispatcher,
    StatAggregator,
    ValueFormatter,
    VariableResolver,
    parse_time_range,
)
from tilestats.application.use_cases import TileStatsUseCase
from tilestats.core.config import Settings, get_settings
from tilestats.core.organization_validation import is_valid_organization_id_format
from tilestats.domain.exceptions import (
    AuthenticationException,
    InvalidOrganizationIdException,
    MissingOrganizationIdException,
    OrganizationMismatchException,
    ServiceUnavailableException,
    TileStatsException,
)
from tilestats.infrastructure.cache import TileStatsCache
from tilestats.infrastructure.security import verify_token, viewer_from_claims
from tilestats.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def get_data_store(request: Request) -> IStatsDataStore:
    """Shared REST data store created in the lifespan."""
    data_store = getattr(request.app.state, "data_store", None)
    if data_store is None:
        raise ServiceUnavailableException("Data store")
    return data_store


def get_tile_config_loader(request: Request) -> ITileConfigLoader:
    """Tile config loader selected by TILE_CONFIG_SOURCE."""
    loader = getattr(request.app.state, "tile_config_loader", None)
    if loader is None:
        raise ServiceUnavailableException("Tile configuration store")
    return loader


def get_stats_cache(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
) -> ITileStatsCache | None:
    """Tile stats cache when Redis is enabled, else None."""
    cache = getattr(request.app.state, "cache", None)
    if cache is None:
        return None
    return TileStatsCache(cache, ttl=settings.cache_ttl_tile_stats)


def get_tile_stats_use_case(
    data_store: Annotated[IStatsDataStore, Depends(get_data_store)],
    loader: Annotated[ITileConfigLoader, Depends(get_tile_config_loader)],
    cache: Annotated[ITileStatsCache | None, Depends(get_stats_cache)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TileStatsUseCase:
    """Tile stats use case wired with resolver, dispatcher, evaluator, formatter."""
    resolver = VariableResolver(strict=settings.strict_placeholders)
    evaluator = ConditionEvaluator(resolver)
    dispatcher = QueryDispatcher(
        data_store,
        resolver,
        timeout_seconds=settings.query_timeout_seconds,
        custom_query_function=settings.custom_query_function,
    )
    aggregator = StatAggregator(
        dispatcher, evaluator, ValueFormatter(currency_symbol=settings.currency_symbol)
    )
    return TileStatsUseCase(loader, aggregator, cache)


def get_viewer(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(_bearer)],
) -> ViewerContext:
    """Viewer from the bearer token; anonymous when no token is sent.

    Raises:
        AuthenticationException: If a token is sent but cannot be verified.
    """
    if credentials is None:
        return ViewerContext()
    try:
        payload = verify_token(credentials.credentials)
    except ValueError as e:
        logger.info("Rejected bearer token: %s", e)
        raise AuthenticationException("Invalid or expired token") from e
    return viewer_from_claims(payload)


def validate_organization_id(raw: str | None) -> str:
    """Return the trimmed organization id.

    Raises:
        MissingOrganizationIdException: If absent or blank.
        InvalidOrganizationIdException: If malformed.
    """
    if raw is None or not raw.strip():
        raise MissingOrganizationIdException()
    value = raw.strip()
    if not is_valid_organization_id_format(value):
        raise InvalidOrganizationIdException()
    return value


def get_query_organization_id(
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    organization_id: Annotated[str | None, Query()] = None,
) -> str:
    """Organization id from the query string, else from the organization header."""
    raw = organization_id
    if raw is None or not raw.strip():
        raw = request.headers.get(settings.organization_header_name)
    return validate_organization_id(raw)


def validate_time_range(time_range: str | None) -> str | None:
    """Raise INVALID_TIME_RANGE (400) for expressions the resolver cannot parse."""
    if time_range is None or not time_range.strip():
        return None
    try:
        parse_time_range(time_range, utc_now())
    except ValueError:
        raise TileStatsException(
            f"Unrecognized timeRange: {time_range}",
            "INVALID_TIME_RANGE",
            {"field": "timeRange"},
        ) from None
    return time_range.strip()


VARIABLE_QUERY_PREFIX = "var."


def get_request_variables(request: Request) -> dict[str, Any]:
    """Collect 'var.<name>' query parameters for '$var.<name>' placeholders.

    A repeated parameter becomes a list of its values.

    Raises:
        TileStatsException: INVALID_VARIABLE for a name that is not a plain identifier.
    """
    variables: dict[str, Any] = {}
    for key in request.query_params.keys():
        if not key.startswith(VARIABLE_QUERY_PREFIX):
            continue
        name = key[len(VARIABLE_QUERY_PREFIX):]
        if not is_valid_variable_name(name):
            raise TileStatsException(
                f"Invalid variable name: {name!r}", "INVALID_VARIABLE", {"field": key}
            )
        values = request.query_params.getlist(key)
        variables[name] = values[0] if len(values) == 1 else values
    return variables


def build_request_context(
    organization_id: str,
    viewer: ViewerContext,
    *,
    time_range: str | None = None,
    filter_by: str | None = None,
    variables: dict[str, Any] | None = None,
) -> RequestContext:
    """Assemble the per-request context after checking the viewer's organization.

    Raises:
        OrganizationMismatchException: If the token belongs to another organization.
        TileStatsException: INVALID_TIME_RANGE for an unknown timeRange.
    """
    if viewer.organization_id is not None and viewer.organization_id != organization_id:
        raise OrganizationMismatchException()
    return RequestContext.build(
        organization_id,
        time_range=validate_time_range(time_range),
        filter_by=filter_by,
        viewer=viewer,
        variables=variables,
    )
