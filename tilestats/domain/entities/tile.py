"""Tile configuration domain entities.

Read-only at request time: configurations are authored elsewhere and
loaded through a TileConfigLoader. Operators are kept as the raw strings
found in the document so that a malformed condition degrades one stat
(or one condition) instead of rejecting the whole tile.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from tilestats.domain.enums import QueryOperation, StatFormat
from tilestats.domain.exceptions import InvalidTileConfigException


@dataclass(frozen=True)
class FilterCondition:
    """field/operator/value triple; value may be a placeholder token."""

    field: str
    operator: str
    value: Any = None


@dataclass(frozen=True)
class QuerySpecification:
    """How to compute one stat's raw value."""

    table: str
    operation: QueryOperation
    field: str | None = None
    query: str | None = None
    conditions: tuple[FilterCondition, ...] = ()


@dataclass(frozen=True)
class StatDeclaration:
    """A named stat on a tile."""

    stat_id: str
    label: str
    query: QuerySpecification
    format: StatFormat = StatFormat.NUMBER
    is_private: bool = False
    conditions: tuple[FilterCondition, ...] = ()


@dataclass(frozen=True)
class TileUI:
    title: str
    subtitle: str | None = None
    icon: str | None = None
    color: str | None = None


@dataclass
class TileConfiguration:
    """Declarative tile: UI metadata, stats, and visibility conditions.

    organization_id is None for shared templates usable by any organization.
    """

    tile_id: str
    ui: TileUI
    stats: list[StatDeclaration] = field(default_factory=list)
    conditions: list[FilterCondition] = field(default_factory=list)
    workspace_id: str | None = None
    template_id: str | None = None
    organization_id: str | None = None
    tile_type: str | None = None
    enabled: bool = True
    layout: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Raise InvalidTileConfigException if stat ids repeat within the tile."""
        seen: set[str] = set()
        duplicates: list[str] = []
        for stat in self.stats:
            if stat.stat_id in seen:
                duplicates.append(stat.stat_id)
            seen.add(stat.stat_id)
        if duplicates:
            raise InvalidTileConfigException(
                self.tile_id,
                [f"duplicate statId: {stat_id}" for stat_id in duplicates],
            )

    def is_visible_to(self, organization_id: str) -> bool:
        """Return True if the tile belongs to the organization or is shared."""
        return self.organization_id is None or self.organization_id == organization_id
