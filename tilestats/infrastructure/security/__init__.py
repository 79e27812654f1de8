"""Security: bearer token verification."""

from tilestats.infrastructure.security.jwt import (
    create_access_token,
    verify_token,
    viewer_from_claims,
)

__all__ = [
    "create_access_token",
    "verify_token",
    "viewer_from_claims",
]
