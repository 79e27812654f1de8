"""Tests for rendering filters as PostgREST query parameters."""

import pytest

from tilestats.application.dtos.tile_stats import ResolvedFilter
from tilestats.domain.enums import ConditionOperator as Op
from tilestats.domain.operators import compare
from tilestats.infrastructure.datastore import render_filter, render_filters


@pytest.mark.parametrize(
    ("flt", "expected"),
    [
        (ResolvedFilter("status", Op.EQUALS, "paid"), ("status", "eq.paid")),
        (ResolvedFilter("status", Op.NOT_EQUALS, "void"), ("status", "neq.void")),
        (ResolvedFilter("total", Op.GREATER_THAN, 10), ("total", "gt.10")),
        (ResolvedFilter("total", Op.GREATER_THAN_OR_EQUAL, 10), ("total", "gte.10")),
        (ResolvedFilter("total", Op.LESS_THAN, 5.5), ("total", "lt.5.5")),
        (ResolvedFilter("total", Op.LESS_THAN_OR_EQUAL, 5), ("total", "lte.5")),
        (ResolvedFilter("active", Op.EQUALS, True), ("active", "eq.true")),
        (ResolvedFilter("status", Op.IN, ["paid", "open"]), ("status", 'in.("paid","open")')),
        (ResolvedFilter("status", Op.NOT_IN, ["void"]), ("status", 'not.in.("void")')),
        (ResolvedFilter("name", Op.CONTAINS, "acme"), ("name", "ilike.*acme*")),
        (ResolvedFilter("tags", Op.CONTAINS, ["vip"]), ("tags", 'cs.{"vip"}')),
        (ResolvedFilter("sku", Op.STARTS_WITH, "AB"), ("sku", "like.AB*")),
        (
            ResolvedFilter("paid_at", Op.DATE_AFTER, "2024-01-01T00:00:00Z"),
            ("paid_at", "gt.2024-01-01T00:00:00Z"),
        ),
        (ResolvedFilter("paid_at", Op.DATE_BEFORE, "2024-01-01"), ("paid_at", "lt.2024-01-01")),
        (ResolvedFilter("deleted_at", Op.IS_NULL), ("deleted_at", "is.null")),
        (ResolvedFilter("deleted_at", Op.IS_NOT_NULL), ("deleted_at", "not.is.null")),
        (ResolvedFilter("deleted_at", Op.EQUALS, None), ("deleted_at", "is.null")),
    ],
)
def test_render_filter(flt: ResolvedFilter, expected: tuple[str, str]) -> None:
    assert render_filter(flt) == expected


def test_in_values_with_commas_are_quoted() -> None:
    flt = ResolvedFilter("city", Op.IN, ['Paris, FR', 'say "hi"'])
    assert render_filter(flt) == ("city", 'in.("Paris, FR","say \\"hi\\"")')


def test_render_filters_keeps_repeated_columns() -> None:
    params = render_filters(
        [
            ResolvedFilter("created_at", Op.GREATER_THAN_OR_EQUAL, "2024-01-01"),
            ResolvedFilter("created_at", Op.LESS_THAN, "2024-02-01"),
        ]
    )
    assert params == [("created_at", "gte.2024-01-01"), ("created_at", "lt.2024-02-01")]


def test_contains_is_case_insensitive_in_process_and_over_rest() -> None:
    flt = ResolvedFilter("tier", Op.CONTAINS, "gold")
    assert render_filter(flt) == ("tier", "ilike.*gold*")
    assert compare(Op.CONTAINS, "Premium Gold", "gold")
    assert compare(Op.CONTAINS, "premium gold", "GOLD")
