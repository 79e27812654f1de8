"""Cache key builders. Single place for key format.

Key components (organization_id, tile_id) must not contain CACHE_KEY_SEP
to avoid ambiguous or colliding keys.
"""

import hashlib
import json
from collections.abc import Iterable, Mapping
from typing import Any

from tilestats.core.constants import CACHE_KEY_SEP, CACHE_PREFIX_TILE_STATS


def _validate_key_component(value: str, name: str) -> None:
    """Raise ValueError if value contains the cache key separator."""
    if CACHE_KEY_SEP in value:
        raise ValueError(
            f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
        )


def request_digest(
    time_range: str | None,
    filter_by: str | None,
    stat_ids: Iterable[str],
    *,
    user_id: str | None = None,
    variables: Mapping[str, Any] | None = None,
) -> str:
    """Stable digest of everything in a request that can change a tile's results.

    Query filters may reference the viewer ($user_id) and request variables
    ($var.*), so both are part of the digest.
    """
    payload = json.dumps(
        {
            "time_range": time_range or "",
            "filter_by": filter_by or "",
            "stat_ids": sorted(stat_ids),
            "user_id": user_id or "",
            "variables": dict(variables or {}),
        },
        sort_keys=True,
        default=str,
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:32]


def tile_stats_key(organization_id: str, tile_id: str, digest: str) -> str:
    """Cache key for a resolved stats batch (organization + tile + request digest)."""
    _validate_key_component(organization_id, "organization_id")
    _validate_key_component(tile_id, "tile_id")
    return CACHE_KEY_SEP.join(
        (CACHE_PREFIX_TILE_STATS, organization_id, tile_id, digest)
    )
