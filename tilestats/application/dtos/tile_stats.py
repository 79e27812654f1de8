"""DTOs for tile stats resolution (request context, per-stat results, batch metadata)."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from tilestats.domain.enums import ConditionOperator, StatFormat
from tilestats.shared.utils.datetime import utc_now

_FILTER_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}$")

# Query parameters PostgREST interprets itself; never usable as filter columns.
_RESERVED_FILTER_KEYS = frozenset(
    {"select", "limit", "offset", "order", "or", "and", "not", "columns", "on_conflict"}
)


def is_valid_variable_name(name: str) -> bool:
    """True for names usable as '$var.<name>' placeholders."""
    return bool(_FILTER_KEY_RE.match(name))


def parse_filter_by(raw: str | None) -> dict[str, str]:
    """Parse 'key:value,key2:value2' into a dict.

    Pairs without a ':', with a key that is not a plain column name, or
    with a reserved PostgREST parameter name (select, limit, ...) are
    dropped; the value keeps any further ':' characters (e.g. timestamps).
    """
    if not raw:
        return {}
    filters: dict[str, str] = {}
    for pair in raw.split(","):
        key, sep, value = pair.partition(":")
        key = key.strip()
        if not sep or not _FILTER_KEY_RE.match(key) or key.lower() in _RESERVED_FILTER_KEYS:
            continue
        filters[key] = value.strip()
    return filters


@dataclass(frozen=True)
class ViewerContext:
    """Identity decoded from the bearer token; anonymous when no token was sent."""

    user_id: str | None = None
    role: str | None = None
    permissions: tuple[str, ...] = ()
    organization_id: str | None = None

    @property
    def is_anonymous(self) -> bool:
        return self.user_id is None

    def has_permission(self, permission: str) -> bool:
        return permission in self.permissions

    def to_scope(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "role": self.role,
            "permissions": list(self.permissions),
            "organization_id": self.organization_id,
        }


@dataclass(frozen=True)
class RequestContext:
    """Everything a single request resolves against. Lives for one request.

    The organization id is passed explicitly through every call; nothing
    reads a current organization from ambient state.
    """

    organization_id: str
    time_range: str | None = None
    filter_by: str | None = None
    filters: dict[str, str] = field(default_factory=dict)
    variables: dict[str, Any] = field(default_factory=dict)
    viewer: ViewerContext = field(default_factory=ViewerContext)
    now: datetime = field(default_factory=utc_now)

    @classmethod
    def build(
        cls,
        organization_id: str,
        *,
        time_range: str | None = None,
        filter_by: str | None = None,
        viewer: ViewerContext | None = None,
        variables: dict[str, Any] | None = None,
        now: datetime | None = None,
    ) -> "RequestContext":
        """Create a context, parsing the filter-by string once."""
        return cls(
            organization_id=organization_id,
            time_range=time_range,
            filter_by=filter_by,
            filters=parse_filter_by(filter_by),
            variables=dict(variables or {}),
            viewer=viewer or ViewerContext(),
            now=now or utc_now(),
        )

    def to_scope(self) -> dict[str, Any]:
        """Return the nested mapping condition field paths are resolved in."""
        return {
            "user": self.viewer.to_scope(),
            "organization": {"organization_id": self.organization_id},
            "request": {
                "time_range": self.time_range,
                "filter_by": self.filter_by,
                "filters": dict(self.filters),
            },
            "variables": dict(self.variables),
        }


@dataclass(frozen=True)
class ResolvedFilter:
    """Filter ready for the data store: operator parsed, placeholders substituted."""

    field: str
    operator: ConditionOperator
    value: Any = None


@dataclass(frozen=True)
class QueryOutcome:
    """Raw scalar returned by the query dispatcher."""

    value: Any
    execution_time_ms: float


@dataclass
class ResolvedStatResult:
    """One stat in a response. error is set iff the query failed."""

    stat_id: str
    label: str
    value: Any
    formatted_value: str
    format: StatFormat
    execution_time_ms: float
    error: dict[str, str] | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "statId": self.stat_id,
            "label": self.label,
            "value": self.value,
            "formattedValue": self.formatted_value,
            "format": self.format.value,
            "executionTime": self.execution_time_ms,
        }
        if self.error is not None:
            data["error"] = dict(self.error)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResolvedStatResult":
        """Rebuild a result from to_dict() output (cache round trip)."""
        return cls(
            stat_id=data["statId"],
            label=data["label"],
            value=data.get("value"),
            formatted_value=data["formattedValue"],
            format=StatFormat(data["format"]),
            execution_time_ms=data.get("executionTime", 0.0),
            error=data.get("error"),
        )


@dataclass
class BatchMetadata:
    """Batch-level execution summary, computed after all stats settle."""

    tile_id: str
    organization_id: str
    execution_time_ms: float
    total_stats: int
    successful_stats: int
    failed_stats: int
    cached: bool = False


@dataclass
class TileStatsResult:
    stats: list[ResolvedStatResult]
    metadata: BatchMetadata
    refreshed: bool = False
