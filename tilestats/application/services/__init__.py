"""Resolution services: placeholders, conditions, queries, aggregation, formatting."""

from tilestats.application.services.condition_evaluator import ConditionEvaluator
from tilestats.application.services.query_dispatcher import QueryDispatcher
from tilestats.application.services.stat_aggregator import StatAggregator
from tilestats.application.services.value_formatter import ValueFormatter, format_value
from tilestats.application.services.variable_resolver import (
    VariableResolver,
    parse_time_range,
)

__all__ = [
    "ConditionEvaluator",
    "QueryDispatcher",
    "StatAggregator",
    "ValueFormatter",
    "VariableResolver",
    "format_value",
    "parse_time_range",
]
