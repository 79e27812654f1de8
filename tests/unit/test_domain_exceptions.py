"""Tests for domain exception payloads."""

from tilestats.domain.exceptions import (
    InvalidRequestBodyException,
    InvalidTileConfigException,
    MissingOrganizationIdException,
    QueryError,
    TileNotFoundException,
    TileStatsException,
)


def test_error_body_shape() -> None:
    body = TileNotFoundException("sales").to_dict()
    assert body == {
        "success": False,
        "error": {
            "code": "TILE_NOT_FOUND",
            "message": "Tile not found: sales",
            "details": {"tile_id": "sales"},
        },
    }


def test_error_code_defaults_to_class_name() -> None:
    assert TileStatsException("boom").error_code == "TileStatsException"


def test_missing_organization_names_the_field() -> None:
    exc = MissingOrganizationIdException()
    assert exc.error_code == "MISSING_ORGANIZATION_ID"
    assert exc.details == {"field": "organization_id"}


def test_invalid_body_details_only_with_errors() -> None:
    assert InvalidRequestBodyException().details == {}
    exc = InvalidRequestBodyException("bad", [{"loc": ["forceRefresh"]}])
    assert exc.details == {"errors": [{"loc": ["forceRefresh"]}]}


def test_invalid_tile_config_lists_problems() -> None:
    exc = InvalidTileConfigException("sales", ["stats: too short"])
    assert exc.details == {"tile_id": "sales", "errors": ["stats: too short"]}


def test_query_error_is_client_safe_dict() -> None:
    assert QueryError("QUERY_TIMEOUT", "Query timed out").to_dict() == {
        "code": "QUERY_TIMEOUT",
        "message": "Query timed out",
    }
