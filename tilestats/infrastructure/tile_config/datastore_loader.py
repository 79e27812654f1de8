"""Tile configurations read from a data store table through the REST client.

Table columns: tile_id, organization_id (NULL for shared tiles), config (JSON).
"""

from __future__ import annotations

import json
import logging
from typing import Any

from tilestats.application.dtos.tile_stats import ResolvedFilter
from tilestats.domain.entities.tile import TileConfiguration
from tilestats.domain.enums import ConditionOperator
from tilestats.domain.exceptions import (
    DataStoreError,
    InvalidTileConfigException,
    ServiceUnavailableException,
)
from tilestats.infrastructure.datastore._rest_client import SupabaseRESTClient
from tilestats.infrastructure.tile_config.schema import tile_config_from_dict

logger = logging.getLogger(__name__)


class DataStoreTileConfigLoader:
    """Look up one tile row per request; own rows win over shared ones."""

    def __init__(self, client: SupabaseRESTClient, table: str) -> None:
        self.client = client
        self.table = table

    async def get_tile_config(
        self, tile_id: str, organization_id: str
    ) -> TileConfiguration | None:
        rows = await self._select(
            tile_id,
            ResolvedFilter("organization_id", ConditionOperator.EQUALS, organization_id),
        )
        if not rows:
            rows = await self._select(
                tile_id, ResolvedFilter("organization_id", ConditionOperator.IS_NULL)
            )
        if not rows:
            return None
        row = rows[0]
        document = _config_document(row, tile_id)
        # The row's scope is authoritative over whatever the document says.
        document["organizationId"] = row.get("organization_id")
        document.setdefault("tileId", tile_id)
        return tile_config_from_dict(document)

    async def _select(
        self, tile_id: str, scope: ResolvedFilter
    ) -> list[dict[str, Any]]:
        try:
            return await self.client.select_rows(
                self.table,
                [ResolvedFilter("tile_id", ConditionOperator.EQUALS, tile_id), scope],
                columns="tile_id,organization_id,config",
                limit=1,
            )
        except DataStoreError as e:
            logger.error("Tile config lookup failed for %s: %s", tile_id, e.message)
            raise ServiceUnavailableException("Tile configuration store") from e


def _config_document(row: dict[str, Any], tile_id: str) -> dict[str, Any]:
    config = row.get("config")
    if isinstance(config, str):
        try:
            config = json.loads(config)
        except json.JSONDecodeError as e:
            raise InvalidTileConfigException(tile_id, [f"config: {e!s}"]) from e
    if not isinstance(config, dict):
        raise InvalidTileConfigException(tile_id, ["config: must be a JSON object"])
    return dict(config)
