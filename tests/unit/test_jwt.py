"""Tests for bearer token verification and viewer mapping."""

from datetime import timedelta

import pytest

from tilestats.infrastructure.security import (
    create_access_token,
    verify_token,
    viewer_from_claims,
)


def test_round_trip_preserves_claims() -> None:
    token = create_access_token({"sub": "user-1", "organization_id": "org-acme"})
    payload = verify_token(token)

    assert payload["sub"] == "user-1"
    assert payload["organization_id"] == "org-acme"
    assert "exp" in payload


def test_expired_token_is_rejected() -> None:
    token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-30))
    with pytest.raises(ValueError, match="Invalid token"):
        verify_token(token)


def test_token_without_subject_is_rejected() -> None:
    token = create_access_token({"organization_id": "org-acme"})
    with pytest.raises(ValueError):
        verify_token(token)


def test_garbage_is_rejected() -> None:
    with pytest.raises(ValueError):
        verify_token("not-a-jwt")


def test_viewer_from_permission_list() -> None:
    viewer = viewer_from_claims(
        {"sub": 7, "role": "admin", "permissions": ["stats.read"], "organization_id": "org-acme"}
    )

    assert viewer.user_id == "7"
    assert viewer.role == "admin"
    assert viewer.has_permission("stats.read")
    assert viewer.organization_id == "org-acme"
    assert not viewer.is_anonymous


@pytest.mark.parametrize("scope", ["stats.read tiles.write", "stats.read,tiles.write"])
def test_viewer_from_scope_string(scope: str) -> None:
    viewer = viewer_from_claims({"sub": "user-1", "scope": scope})
    assert viewer.permissions == ("stats.read", "tiles.write")
    assert viewer.organization_id is None
