"""Domain enumerations for the tile statistics service.

Enums represent fixed sets of domain values: query operations, display
formats, and comparison operators shared by conditions and query filters.
"""

from enum import Enum


class QueryOperation(str, Enum):
    """Aggregate computed by a stat query."""

    COUNT = "count"
    SUM = "sum"
    AVG = "avg"
    MIN = "min"
    MAX = "max"
    COUNT_DISTINCT = "count_distinct"
    CUSTOM = "custom"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid operation values as strings."""
        return [op.value for op in cls]

    @property
    def requires_field(self) -> bool:
        """True for operations that aggregate a specific column."""
        return self not in (QueryOperation.COUNT, QueryOperation.CUSTOM)


class StatFormat(str, Enum):
    """Display format tag attached to a stat declaration."""

    NUMBER = "number"
    CURRENCY = "currency"
    PERCENTAGE = "percentage"
    DURATION = "duration"
    RELATIVE_TIME = "relative_time"

    @classmethod
    def values(cls) -> list[str]:
        """Return all valid format values as strings."""
        return [fmt.value for fmt in cls]


class ConditionOperator(str, Enum):
    """Comparison operator used by tile/stat conditions and query filters.

    Both the condition evaluator (in process) and the query dispatcher
    (translated to PostgREST filters) read operators from this enum, so a
    condition and a filter with the same operator mean the same thing.
    """

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    GREATER_THAN_OR_EQUAL = "greater_than_or_equal"
    LESS_THAN = "less_than"
    LESS_THAN_OR_EQUAL = "less_than_or_equal"
    IN = "in"
    NOT_IN = "not_in"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"
    DATE_AFTER = "date_after"
    DATE_BEFORE = "date_before"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"

    @classmethod
    def parse(cls, raw: str) -> "ConditionOperator":
        """Return the operator for a canonical name or a known alias.

        Raises:
            ValueError: If raw is not a known operator or alias.
        """
        key = raw.strip().lower() if isinstance(raw, str) else raw
        alias = _OPERATOR_ALIASES.get(key)
        if alias is not None:
            return alias
        return cls(key)

    @property
    def takes_value(self) -> bool:
        """False for unary operators (null checks)."""
        return self not in (ConditionOperator.IS_NULL, ConditionOperator.IS_NOT_NULL)


_OPERATOR_ALIASES: dict[str, ConditionOperator] = {
    "eq": ConditionOperator.EQUALS,
    "=": ConditionOperator.EQUALS,
    "==": ConditionOperator.EQUALS,
    "neq": ConditionOperator.NOT_EQUALS,
    "ne": ConditionOperator.NOT_EQUALS,
    "!=": ConditionOperator.NOT_EQUALS,
    "gt": ConditionOperator.GREATER_THAN,
    ">": ConditionOperator.GREATER_THAN,
    "gte": ConditionOperator.GREATER_THAN_OR_EQUAL,
    ">=": ConditionOperator.GREATER_THAN_OR_EQUAL,
    "lt": ConditionOperator.LESS_THAN,
    "<": ConditionOperator.LESS_THAN,
    "lte": ConditionOperator.LESS_THAN_OR_EQUAL,
    "<=": ConditionOperator.LESS_THAN_OR_EQUAL,
    "not-in": ConditionOperator.NOT_IN,
}
