"""Domain exceptions for the tile statistics service.

Request-level exceptions derive from TileStatsException and are mapped to
HTTP responses in tilestats.core.exception_handlers. QueryError is different:
it describes one failed stat query and is converted into data (a per-stat
error entry) by the stat aggregator, never into a failed request.
"""

from typing import Any


class TileStatsException(Exception):
    """Base exception for request-level errors.

    Presentation layer maps these to HTTP responses using message,
    error_code, and details.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, tile_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Return the error body shared by every failed response."""
        return {
            "success": False,
            "error": {
                "code": self.error_code,
                "message": self.message,
                "details": self.details,
            },
        }


class MissingOrganizationIdException(TileStatsException):
    """Raised when a request carries no organization_id."""

    def __init__(self) -> None:
        super().__init__(
            "organization_id is required",
            "MISSING_ORGANIZATION_ID",
            {"field": "organization_id"},
        )


class InvalidOrganizationIdException(TileStatsException):
    """Raised when organization_id is present but malformed."""

    def __init__(self) -> None:
        super().__init__(
            "organization_id has an invalid format",
            "INVALID_ORGANIZATION_ID",
            {"field": "organization_id"},
        )


class InvalidRequestBodyException(TileStatsException):
    """Raised when a refresh request body is empty, not JSON, or fails validation."""

    def __init__(self, message: str = "Request body is invalid", errors: list[Any] | None = None) -> None:
        """Initialize with message and optional validation errors.

        Args:
            message: Description of the body problem.
            errors: Optional list of field-level validation errors.
        """
        details = {"errors": errors} if errors else {}
        super().__init__(message, "INVALID_REQUEST_BODY", details)


class TileNotFoundException(TileStatsException):
    """Raised when a tile does not exist for the requesting organization.

    A tile owned by another organization is reported the same way so tile
    ids of other tenants are not disclosed.
    """

    def __init__(self, tile_id: str) -> None:
        super().__init__(
            f"Tile not found: {tile_id}",
            "TILE_NOT_FOUND",
            {"tile_id": tile_id},
        )


class InvalidTileConfigException(TileStatsException):
    """Raised when a stored tile configuration fails schema or consistency checks."""

    def __init__(self, tile_id: str, errors: list[str]) -> None:
        """Initialize with tile id and the list of problems found.

        Args:
            tile_id: Tile whose configuration is invalid.
            errors: Human-readable validation problems.
        """
        super().__init__(
            f"Tile configuration is invalid: {tile_id}",
            "INVALID_TILE_CONFIG",
            {"tile_id": tile_id, "errors": errors},
        )


class AuthenticationException(TileStatsException):
    """Raised when a bearer token is present but cannot be verified."""

    def __init__(self, message: str = "Authentication failed") -> None:
        super().__init__(message, "AUTHENTICATION_ERROR")


class OrganizationMismatchException(TileStatsException):
    """Raised when the token's organization differs from the requested one."""

    def __init__(self) -> None:
        super().__init__(
            "Token does not belong to the requested organization",
            "ORGANIZATION_MISMATCH",
        )


class UnresolvedPlaceholderError(Exception):
    """Raised in strict mode when a query references an unknown placeholder token."""

    def __init__(self, token: str) -> None:
        self.token = token
        super().__init__(f"Unresolved placeholder: {token}")


class DataStoreError(Exception):
    """Raised by data store adapters; code is one of PERMISSION_DENIED,
    QUERY_FAILED, NETWORK_ERROR, QUERY_TIMEOUT, MALFORMED_QUERY.

    The message may carry backend detail and is for logs only.
    """

    def __init__(self, code: str, message: str, status_code: int | None = None) -> None:
        self.code = code
        self.message = message
        self.status_code = status_code
        super().__init__(f"{code}: {message}")


class QueryError(Exception):
    """A single stat query failed.

    Attributes:
        code: Machine-readable code (e.g. QUERY_TIMEOUT, PERMISSION_DENIED).
        message: Client-safe description; never contains backend detail.
    """

    def __init__(self, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class ServiceUnavailableException(TileStatsException):
    """Raised when a backing service (data store, tile config store) cannot be reached."""

    def __init__(self, service: str) -> None:
        super().__init__(
            f"{service} is unavailable",
            "SERVICE_UNAVAILABLE",
            {"service": service},
        )
