"""JWT verification for viewer identity.

Uses tilestats.core.config for secret and algorithm. Tokens are issued by
the identity provider; create_access_token exists for local tooling and
tests.
"""

from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import JWTError, jwt

from tilestats.application.dtos.tile_stats import ViewerContext
from tilestats.core.config import get_settings


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token with the given claims.

    Args:
        data: Claims to encode (sub, organization_id, role, permissions).
        expires_delta: Optional TTL; else uses settings.access_token_expire_minutes.

    Returns:
        Encoded JWT string.
    """
    settings = get_settings()
    to_encode = data.copy()
    if expires_delta is not None:
        expire = datetime.now(UTC) + expires_delta
    else:
        expire = datetime.now(UTC) + timedelta(
            minutes=settings.access_token_expire_minutes
        )
    to_encode["exp"] = expire
    encoded = jwt.encode(
        to_encode,
        settings.secret_key.get_secret_value(),
        algorithm=settings.algorithm,
    )
    return cast(str, encoded)


def verify_token(token: str) -> dict[str, Any]:
    """Verify and decode a JWT. Returns the payload.

    Enforces presence of exp and sub.

    Raises:
        ValueError: If token is invalid, expired, or missing required claims,
            or if no SECRET_KEY is configured.
    """
    settings = get_settings()
    secret = settings.secret_key.get_secret_value()
    if not secret:
        raise ValueError("Token verification is not configured (SECRET_KEY unset)")
    try:
        payload = jwt.decode(
            token,
            secret,
            algorithms=[settings.algorithm],
            options={"require_exp": True, "require_sub": True},
        )
    except JWTError as e:
        raise ValueError(f"Invalid token: {e!s}") from e
    if "sub" not in payload:
        raise ValueError("Token missing required claim: sub")
    return payload


def viewer_from_claims(payload: dict[str, Any]) -> ViewerContext:
    """Map verified claims to a ViewerContext.

    permissions may be a list or a space/comma separated string (OAuth 'scope' style).
    """
    raw = payload.get("permissions", payload.get("scope", []))
    if isinstance(raw, str):
        permissions = tuple(p for p in raw.replace(",", " ").split() if p)
    elif isinstance(raw, (list, tuple)):
        permissions = tuple(str(p) for p in raw)
    else:
        permissions = ()
    organization_id = payload.get("organization_id")
    return ViewerContext(
        user_id=str(payload["sub"]),
        role=payload.get("role"),
        permissions=permissions,
        organization_id=str(organization_id) if organization_id is not None else None,
    )
