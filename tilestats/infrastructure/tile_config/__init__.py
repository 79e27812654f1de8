"""Tile configuration loaders (file and data store) and the document schema."""

from tilestats.infrastructure.tile_config.datastore_loader import DataStoreTileConfigLoader
from tilestats.infrastructure.tile_config.file_loader import FileTileConfigLoader
from tilestats.infrastructure.tile_config.schema import (
    TILE_CONFIG_SCHEMA,
    tile_config_from_dict,
    validate_tile_document,
)

__all__ = [
    "TILE_CONFIG_SCHEMA",
    "DataStoreTileConfigLoader",
    "FileTileConfigLoader",
    "tile_config_from_dict",
    "validate_tile_document",
]
