"""Tile configurations from JSON files on disk.

Every *.json file under the configured directory holds one tile document
or a list of them. Documents are parsed once at startup; an invalid file
fails startup rather than a later request.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from tilestats.domain.entities.tile import TileConfiguration
from tilestats.domain.exceptions import InvalidTileConfigException
from tilestats.infrastructure.tile_config.schema import tile_config_from_dict

logger = logging.getLogger(__name__)


class FileTileConfigLoader:
    """In-memory tile registry built from a directory of JSON documents."""

    def __init__(self, tiles: list[TileConfiguration] | None = None) -> None:
        self._tiles: dict[str, list[TileConfiguration]] = {}
        for tile in tiles or []:
            self.add(tile)

    @classmethod
    def from_directory(cls, path: str | Path) -> "FileTileConfigLoader":
        """Load every *.json file under path (recursively).

        Raises:
            InvalidTileConfigException: If a file is not valid JSON or a document is invalid.
        """
        root = Path(path).expanduser()
        loader = cls()
        if not root.is_dir():
            logger.warning("Tile config directory not found: %s", root)
            return loader
        for file in sorted(root.rglob("*.json")):
            for document in _read_documents(file):
                loader.add(tile_config_from_dict(document))
        logger.info("Loaded %s tile configuration(s) from %s", len(loader), root)
        return loader

    def add(self, tile: TileConfiguration) -> None:
        """Register a tile; the same tile id may exist once per organization scope."""
        variants = self._tiles.setdefault(tile.tile_id, [])
        if any(v.organization_id == tile.organization_id for v in variants):
            raise InvalidTileConfigException(
                tile.tile_id,
                [f"tile defined twice for organization {tile.organization_id!r}"],
            )
        variants.append(tile)

    def __len__(self) -> int:
        return sum(len(v) for v in self._tiles.values())

    async def get_tile_config(
        self, tile_id: str, organization_id: str
    ) -> TileConfiguration | None:
        """Return the organization's own tile, else the shared one, else None."""
        variants = self._tiles.get(tile_id, [])
        for tile in variants:
            if tile.organization_id == organization_id:
                return tile
        for tile in variants:
            if tile.organization_id is None:
                return tile
        return None


def _read_documents(file: Path) -> list[Any]:
    try:
        with open(file, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidTileConfigException(file.stem, [f"{file.name}: {e!s}"]) from e
    return data if isinstance(data, list) else [data]
