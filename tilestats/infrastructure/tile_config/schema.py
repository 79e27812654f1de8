"""JSON Schema for tile configuration documents and the parser into domain entities.

Documents use camelCase keys (tileId, statId, isPrivate...). Operators stay
free-form strings here; unknown ones are handled per condition at runtime.
"""

from __future__ import annotations

from typing import Any

import jsonschema

from tilestats.domain.entities.tile import (
    FilterCondition,
    QuerySpecification,
    StatDeclaration,
    TileConfiguration,
    TileUI,
)
from tilestats.domain.enums import QueryOperation, StatFormat
from tilestats.domain.exceptions import InvalidTileConfigException

_CONDITION_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["field", "operator"],
    "properties": {
        "field": {"type": "string", "minLength": 1},
        "operator": {"type": "string", "minLength": 1},
        "value": {},
    },
}

_CONDITIONS_SCHEMA: dict[str, Any] = {"type": "array", "items": _CONDITION_SCHEMA}

TILE_CONFIG_SCHEMA: dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "type": "object",
    "required": ["tileId", "ui", "stats"],
    "properties": {
        "tileId": {"type": "string", "minLength": 1},
        "workspaceId": {"type": ["string", "null"]},
        "templateId": {"type": ["string", "null"]},
        "organizationId": {"type": ["string", "null"]},
        "tileType": {"type": ["string", "null"]},
        "enabled": {"type": "boolean"},
        "layout": {"type": "object"},
        "ui": {
            "type": "object",
            "required": ["title"],
            "properties": {
                "title": {"type": "string"},
                "subtitle": {"type": ["string", "null"]},
                "icon": {"type": ["string", "null"]},
                "color": {"type": ["string", "null"]},
            },
        },
        "conditions": _CONDITIONS_SCHEMA,
        "stats": {
            "type": "array",
            "items": {
                "type": "object",
                "required": ["statId", "label", "query"],
                "properties": {
                    "statId": {"type": "string", "minLength": 1},
                    "label": {"type": "string"},
                    "format": {"enum": StatFormat.values()},
                    "isPrivate": {"type": "boolean"},
                    "conditions": _CONDITIONS_SCHEMA,
                    "query": {
                        "type": "object",
                        "required": ["table", "operation"],
                        "properties": {
                            "table": {"type": "string", "minLength": 1},
                            "operation": {"enum": QueryOperation.values()},
                            "field": {"type": ["string", "null"]},
                            "query": {"type": ["string", "null"]},
                            "conditions": _CONDITIONS_SCHEMA,
                        },
                    },
                },
            },
        },
    },
}

_VALIDATOR = jsonschema.Draft202012Validator(TILE_CONFIG_SCHEMA)


def validate_tile_document(document: Any, tile_id: str = "<unknown>") -> None:
    """Validate a raw tile document; collect every error, not just the first.

    Raises:
        InvalidTileConfigException: If the document does not match the schema.
    """
    errors = sorted(_VALIDATOR.iter_errors(document), key=lambda e: list(e.absolute_path))
    if errors:
        raise InvalidTileConfigException(
            tile_id,
            [
                f"{'/'.join(str(p) for p in e.absolute_path) or '<root>'}: {e.message}"
                for e in errors
            ],
        )


def _conditions(raw: list[dict[str, Any]] | None) -> tuple[FilterCondition, ...]:
    return tuple(
        FilterCondition(field=c["field"], operator=c["operator"], value=c.get("value"))
        for c in raw or []
    )


def _stat(raw: dict[str, Any]) -> StatDeclaration:
    query = raw["query"]
    return StatDeclaration(
        stat_id=raw["statId"],
        label=raw["label"],
        query=QuerySpecification(
            table=query["table"],
            operation=QueryOperation(query["operation"]),
            field=query.get("field"),
            query=query.get("query"),
            conditions=_conditions(query.get("conditions")),
        ),
        format=StatFormat(raw.get("format", StatFormat.NUMBER.value)),
        is_private=bool(raw.get("isPrivate", False)),
        conditions=_conditions(raw.get("conditions")),
    )


def tile_config_from_dict(document: Any) -> TileConfiguration:
    """Validate a raw document and build a TileConfiguration.

    Raises:
        InvalidTileConfigException: On schema errors or duplicate stat ids.
    """
    tile_id = document.get("tileId", "<unknown>") if isinstance(document, dict) else "<unknown>"
    validate_tile_document(document, str(tile_id))
    ui = document["ui"]
    return TileConfiguration(
        tile_id=document["tileId"],
        ui=TileUI(
            title=ui["title"],
            subtitle=ui.get("subtitle"),
            icon=ui.get("icon"),
            color=ui.get("color"),
        ),
        stats=[_stat(s) for s in document["stats"]],
        conditions=list(_conditions(document.get("conditions"))),
        workspace_id=document.get("workspaceId"),
        template_id=document.get("templateId"),
        organization_id=document.get("organizationId"),
        tile_type=document.get("tileType"),
        enabled=document.get("enabled", True),
        layout=dict(document.get("layout") or {}),
    )
