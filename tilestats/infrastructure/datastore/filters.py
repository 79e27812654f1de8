"""Render ResolvedFilters as PostgREST query parameters.

Server-side counterpart of tilestats.domain.operators.compare. 'contains'
is rendered as a case-insensitive substring match for scalar values and as
array containment ('cs') for list values.
"""

from __future__ import annotations

from typing import Any

from tilestats.application.dtos.tile_stats import ResolvedFilter
from tilestats.domain.enums import ConditionOperator

_SIMPLE_OPERATORS: dict[ConditionOperator, str] = {
    ConditionOperator.EQUALS: "eq",
    ConditionOperator.NOT_EQUALS: "neq",
    ConditionOperator.GREATER_THAN: "gt",
    ConditionOperator.GREATER_THAN_OR_EQUAL: "gte",
    ConditionOperator.LESS_THAN: "lt",
    ConditionOperator.LESS_THAN_OR_EQUAL: "lte",
    ConditionOperator.DATE_AFTER: "gt",
    ConditionOperator.DATE_BEFORE: "lt",
}


def _scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _quoted(value: Any) -> str:
    """Quote a list item so commas and parentheses in values stay literal."""
    text = _scalar(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{text}"'


def _as_list(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    return [value]


def _escape_like(value: Any) -> str:
    # PostgREST uses '*' as the LIKE wildcard.
    return _scalar(value).replace("*", "")


def render_filter(flt: ResolvedFilter) -> tuple[str, str]:
    """Return the (column, expression) pair for one filter."""
    op = flt.operator
    value = flt.value
    if op == ConditionOperator.IS_NULL or (op == ConditionOperator.EQUALS and value is None):
        return flt.field, "is.null"
    if op == ConditionOperator.IS_NOT_NULL or (
        op == ConditionOperator.NOT_EQUALS and value is None
    ):
        return flt.field, "not.is.null"
    simple = _SIMPLE_OPERATORS.get(op)
    if simple is not None:
        return flt.field, f"{simple}.{_scalar(value)}"
    if op == ConditionOperator.IN:
        return flt.field, f"in.({','.join(_quoted(v) for v in _as_list(value))})"
    if op == ConditionOperator.NOT_IN:
        return flt.field, f"not.in.({','.join(_quoted(v) for v in _as_list(value))})"
    if op == ConditionOperator.CONTAINS:
        if isinstance(value, (list, tuple, set, frozenset)):
            return flt.field, f"cs.{{{','.join(_quoted(v) for v in value)}}}"
        return flt.field, f"ilike.*{_escape_like(value)}*"
    if op == ConditionOperator.STARTS_WITH:
        return flt.field, f"like.{_escape_like(value)}*"
    raise ValueError(f"Unsupported operator: {op!r}")


def render_filters(filters: list[ResolvedFilter]) -> list[tuple[str, str]]:
    """Render filters as a params list (repeated columns allowed)."""
    return [render_filter(flt) for flt in filters]
