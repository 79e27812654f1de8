"""In-process semantics of ConditionOperator.

compare() is what a condition means when evaluated against context values.
The data store adapter renders the same operators as server-side filters
(tilestats.infrastructure.datastore.filters); keep the two in step.
"""

from __future__ import annotations

import operator
from collections.abc import Callable
from datetime import datetime
from typing import Any

from tilestats.domain.enums import ConditionOperator
from tilestats.shared.utils.datetime import parse_datetime_utc


def _as_number(value: Any) -> float:
    if isinstance(value, bool):
        raise TypeError("booleans are not ordered")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"not a number: {value!r}")


def _ordered(actual: Any, expected: Any) -> tuple[Any, Any]:
    """Return a comparable pair: numbers first, then timestamps, then same-type values."""
    try:
        return _as_number(actual), _as_number(expected)
    except (TypeError, ValueError):
        pass
    if isinstance(actual, (str, datetime)) and isinstance(expected, (str, datetime)):
        try:
            return parse_datetime_utc(actual), parse_datetime_utc(expected)
        except ValueError:
            pass
    if type(actual) is type(expected):
        return actual, expected
    raise TypeError(f"cannot order {type(actual).__name__} and {type(expected).__name__}")


def _equals(actual: Any, expected: Any) -> bool:
    if actual == expected:
        return True
    if actual is None or expected is None:
        return False
    if isinstance(actual, (list, dict)) or isinstance(expected, (list, dict)):
        return False
    # Query params and JSON documents disagree on scalar types ("5" vs 5).
    return str(actual) == str(expected)


def _as_collection(value: Any) -> list[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    raise TypeError(f"expected a list, got {type(value).__name__}")


def _contains(actual: Any, expected: Any) -> bool:
    if isinstance(actual, (list, tuple, set, frozenset)):
        return any(_equals(item, expected) for item in actual)
    if isinstance(actual, str):
        # Case-insensitive, matching the ilike rendering used for query filters.
        return str(expected).casefold() in actual.casefold()
    raise TypeError(f"contains needs a list or string, got {type(actual).__name__}")


def _starts_with(actual: Any, expected: Any) -> bool:
    if not isinstance(actual, str):
        raise TypeError("starts_with needs a string")
    return actual.startswith(str(expected))


_COMPARATORS: dict[ConditionOperator, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _equals,
    ConditionOperator.NOT_EQUALS: lambda a, e: not _equals(a, e),
    ConditionOperator.GREATER_THAN: lambda a, e: operator.gt(*_ordered(a, e)),
    ConditionOperator.GREATER_THAN_OR_EQUAL: lambda a, e: operator.ge(*_ordered(a, e)),
    ConditionOperator.LESS_THAN: lambda a, e: operator.lt(*_ordered(a, e)),
    ConditionOperator.LESS_THAN_OR_EQUAL: lambda a, e: operator.le(*_ordered(a, e)),
    ConditionOperator.IN: lambda a, e: any(_equals(a, item) for item in _as_collection(e)),
    ConditionOperator.NOT_IN: lambda a, e: not any(_equals(a, item) for item in _as_collection(e)),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.STARTS_WITH: _starts_with,
    ConditionOperator.DATE_AFTER: lambda a, e: parse_datetime_utc(a) > parse_datetime_utc(e),
    ConditionOperator.DATE_BEFORE: lambda a, e: parse_datetime_utc(a) < parse_datetime_utc(e),
    ConditionOperator.IS_NULL: lambda a, e: a is None,
    ConditionOperator.IS_NOT_NULL: lambda a, e: a is not None,
}


def compare(op: ConditionOperator, actual: Any, expected: Any) -> bool:
    """Apply op to (actual, expected).

    Raises:
        TypeError: If the operands cannot be compared with this operator.
        ValueError: If a timestamp or number operand cannot be parsed.
    """
    if op.takes_value and actual is None and op not in (
        ConditionOperator.EQUALS,
        ConditionOperator.NOT_EQUALS,
    ):
        return False
    return _COMPARATORS[op](actual, expected)
