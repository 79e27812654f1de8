"""Tests for tile/stat condition evaluation."""

import pytest

from tilestats.application.dtos.tile_stats import RequestContext, ViewerContext
from tilestats.application.services.condition_evaluator import ConditionEvaluator
from tilestats.application.services.variable_resolver import VariableResolver
from tilestats.domain.entities.tile import FilterCondition


@pytest.fixture
def context() -> RequestContext:
    return RequestContext.build(
        "org-acme",
        time_range="30d",
        filter_by="region:emea",
        viewer=ViewerContext(
            user_id="user-1", role="admin", permissions=("stats.read", "tiles.view")
        ),
        variables={"plan": "pro", "seats": 12},
    )


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


def test_empty_condition_list_is_satisfied(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    assert evaluator.evaluate([], context) is True


def test_all_conditions_must_hold(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    conditions = [
        FilterCondition("user.role", "equals", "admin"),
        FilterCondition("variables.seats", "gte", 10),
    ]
    assert evaluator.evaluate(conditions, context) is True
    conditions.append(FilterCondition("variables.plan", "equals", "enterprise"))
    assert evaluator.evaluate(conditions, context) is False


def test_contains_checks_list_membership(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    condition = FilterCondition("user.permissions", "contains", "stats.read")
    assert evaluator.evaluate([condition], context) is True
    missing = FilterCondition("user.permissions", "contains", "stats.write")
    assert evaluator.evaluate([missing], context) is False


def test_condition_value_goes_through_resolver(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    condition = FilterCondition("organization.organization_id", "eq", "$organization_id")
    assert evaluator.evaluate([condition], context) is True
    by_filter = FilterCondition("request.filters.region", "equals", "$filter.region")
    assert evaluator.evaluate([by_filter], context) is True


def test_in_operator(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    assert evaluator.evaluate(
        [FilterCondition("request.time_range", "in", ["7d", "30d"])], context
    )
    assert not evaluator.evaluate(
        [FilterCondition("request.time_range", "not_in", ["7d", "30d"])], context
    )


def test_unknown_operator_is_not_satisfied(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    assert evaluator.evaluate([FilterCondition("user.role", "resembles", "admin")], context) is False


def test_invalid_field_path_is_not_satisfied(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    assert evaluator.evaluate([FilterCondition("user.role; drop", "equals", "admin")], context) is False
    assert evaluator.evaluate([FilterCondition("", "equals", "admin")], context) is False


def test_missing_path_only_satisfies_is_null(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    assert evaluator.evaluate([FilterCondition("user.department", "is_null")], context) is True
    assert evaluator.evaluate([FilterCondition("user.department", "equals", "sales")], context) is False


def test_type_mismatch_is_not_satisfied(evaluator: ConditionEvaluator, context: RequestContext) -> None:
    assert evaluator.evaluate([FilterCondition("variables.plan", "gt", 3)], context) is False


def test_strict_unresolved_placeholder_is_not_satisfied(context: RequestContext) -> None:
    evaluator = ConditionEvaluator(VariableResolver(strict=True))
    assert evaluator.evaluate([FilterCondition("user.role", "equals", "$nope")], context) is False


def test_anonymous_viewer_has_null_user_id(evaluator: ConditionEvaluator) -> None:
    context = RequestContext.build("org-acme")
    assert evaluator.evaluate([FilterCondition("user.user_id", "is_null")], context) is True
    assert evaluator.evaluate([FilterCondition("user.user_id", "is_not_null")], context) is False
