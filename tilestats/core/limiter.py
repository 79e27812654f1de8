"""SlowAPI rate limiting for forced refreshes.

The limiter is shared so main (app.state.limiter) and the tiles endpoints
use the same instance. Forced refreshes bypass the cache and fan out one
query per stat, so they are limited per client address and tile.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from tilestats.core.config import get_settings

limiter = Limiter(key_func=get_remote_address)


def refresh_key(request: Request) -> str:
    """Bucket refreshes by client address and tile id."""
    tile_id = request.path_params.get("tile_id", "")
    return f"{get_remote_address(request)}:{tile_id}"


def refresh_limit() -> str:
    """Limit string, read from settings on every request."""
    return get_settings().refresh_rate_limit


limit_refresh = limiter.limit(refresh_limit, key_func=refresh_key)
