"""Domain entities: tile configuration and its stat/query declarations."""

from tilestats.domain.entities.tile import (
    FilterCondition,
    QuerySpecification,
    StatDeclaration,
    TileConfiguration,
    TileUI,
)

__all__ = [
    "FilterCondition",
    "QuerySpecification",
    "StatDeclaration",
    "TileConfiguration",
    "TileUI",
]
