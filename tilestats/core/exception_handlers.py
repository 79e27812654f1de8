"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps domain and framework
exceptions to HTTP responses; every error body has the shape
{"success": false, "error": {"code", "message", "details"}}.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from tilestats.core.config import get_settings
from tilestats.domain.exceptions import TileStatsException

logger = logging.getLogger(__name__)

# Map domain error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "MISSING_ORGANIZATION_ID": 400,
    "INVALID_ORGANIZATION_ID": 400,
    "INVALID_REQUEST_BODY": 400,
    "INVALID_TIME_RANGE": 400,
    "INVALID_VARIABLE": 400,
    "AUTHENTICATION_ERROR": 401,
    "ORGANIZATION_MISMATCH": 403,
    "TILE_NOT_FOUND": 404,
    "INVALID_TILE_CONFIG": 500,
    "SERVICE_UNAVAILABLE": 503,
}


def error_body(code: str, message: str, details: Any = None) -> dict[str, Any]:
    """Build the error body used by every failed response."""
    return {
        "success": False,
        "error": {"code": code, "message": message, "details": details or {}},
    }


def _tile_stats_exception_handler(
    request: Request, exc: TileStatsException
) -> JSONResponse:
    """Return JSON from TileStatsException.to_dict() with appropriate status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    if status >= 500:
        logger.error("%s: %s %s", exc.error_code, exc.message, exc.details)
    headers = {"WWW-Authenticate": "Bearer"} if status == 401 else None
    return JSONResponse(status_code=status, content=exc.to_dict(), headers=headers)


def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with validation error details."""
    return JSONResponse(
        status_code=400,
        content=error_body(
            "INVALID_REQUEST",
            "Request validation failed",
            {"errors": jsonable_encoder(exc.errors())},
        ),
    )


def _rate_limit_exception_handler(
    request: Request, exc: RateLimitExceeded
) -> JSONResponse:
    """Return 429 in the shared error shape."""
    return JSONResponse(
        status_code=429,
        content=error_body("RATE_LIMITED", f"Rate limit exceeded: {exc.detail}"),
    )


def _http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Return JSON for Starlette HTTP exceptions (status + detail)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body("HTTP_ERROR", str(exc.detail)),
        headers=getattr(exc, "headers", None),
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", detail),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app.

    Call once after creating the app. Handlers: TileStatsException (and
    subclasses), RequestValidationError, RateLimitExceeded,
    StarletteHTTPException, generic Exception.
    """
    app.add_exception_handler(TileStatsException, _tile_stats_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
