"""Tile/stat visibility conditions.

A condition list is satisfied when every condition holds. Field paths are
dotted lookups into RequestContext.to_scope(): user, organization,
request, variables. Operators use the same semantics as query filters
(tilestats.domain.operators).

evaluate() never raises: anything malformed counts as "not satisfied".
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from tilestats.application.dtos.tile_stats import RequestContext
from tilestats.application.services.variable_resolver import VariableResolver
from tilestats.domain.entities.tile import FilterCondition
from tilestats.domain.enums import ConditionOperator
from tilestats.domain.exceptions import UnresolvedPlaceholderError
from tilestats.domain.operators import compare

logger = logging.getLogger(__name__)

_FIELD_PATH_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)*$")

_MISSING = object()


def _lookup_path(scope: Mapping[str, Any], path: str) -> Any:
    current: Any = scope
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


class ConditionEvaluator:
    """Decide whether a tile or stat applies to the current request."""

    def __init__(self, resolver: VariableResolver | None = None) -> None:
        self.resolver = resolver or VariableResolver()

    def evaluate(
        self, conditions: Iterable[FilterCondition], context: RequestContext
    ) -> bool:
        """Return True when every condition holds (True for an empty list)."""
        conditions = list(conditions)
        if not conditions:
            return True
        scope = context.to_scope()
        return all(self._holds(condition, scope, context) for condition in conditions)

    def _holds(
        self,
        condition: FilterCondition,
        scope: Mapping[str, Any],
        context: RequestContext,
    ) -> bool:
        field = getattr(condition, "field", None)
        if not isinstance(field, str) or not _FIELD_PATH_RE.match(field):
            logger.debug("Condition rejected: invalid field path %r", field)
            return False
        try:
            op = ConditionOperator.parse(condition.operator)
        except (ValueError, AttributeError):
            logger.debug("Condition rejected: unknown operator %r", condition.operator)
            return False
        actual = _lookup_path(scope, field)
        if actual is _MISSING:
            return op == ConditionOperator.IS_NULL
        try:
            expected = self.resolver.resolve(condition.value, context)
            return bool(compare(op, actual, expected))
        except (TypeError, ValueError, UnresolvedPlaceholderError) as e:
            logger.debug("Condition %s %s not satisfied: %s", field, op.value, e)
            return False
