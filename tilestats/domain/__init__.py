"""Domain layer: tile entities, enums, operators, and exceptions.

No dependencies on infrastructure or presentation. Used by application
and infrastructure layers.
"""

from tilestats.domain.entities import (
    FilterCondition,
    QuerySpecification,
    StatDeclaration,
    TileConfiguration,
    TileUI,
)
from tilestats.domain.enums import ConditionOperator, QueryOperation, StatFormat
from tilestats.domain.exceptions import (
    QueryError,
    TileNotFoundException,
    TileStatsException,
)

__all__ = [
    "ConditionOperator",
    "FilterCondition",
    "QueryError",
    "QueryOperation",
    "QuerySpecification",
    "StatDeclaration",
    "StatFormat",
    "TileConfiguration",
    "TileNotFoundException",
    "TileStatsException",
    "TileUI",
]
