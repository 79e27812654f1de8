"""Data store client wiring.

Initialized at app startup from SUPABASE_URL / SUPABASE_SERVICE_KEY on the
shared httpx.AsyncClient created by the lifespan. The HTTP client's pool is
owned by the lifespan; this module only holds the REST wrapper.
"""

import logging

import httpx

from tilestats.core.config import get_settings
from tilestats.infrastructure.datastore._rest_client import SupabaseRESTClient

logger = logging.getLogger(__name__)

_data_store: SupabaseRESTClient | None = None


def init_data_store(http: httpx.AsyncClient) -> bool:
    """Create the REST data store client on top of the shared HTTP client.

    Safe to call when SUPABASE_URL is not set (no-op). Idempotent.

    Returns:
        True if the data store is configured, False otherwise.
    """
    global _data_store
    if _data_store is not None:
        return True
    settings = get_settings()
    if not settings.supabase_url:
        logger.warning("SUPABASE_URL not set; tile stats requests will return SERVICE_UNAVAILABLE")
        return False
    _data_store = SupabaseRESTClient(
        settings.supabase_url,
        settings.supabase_service_key.get_secret_value(),
        http,
        distinct_scan_limit=settings.distinct_scan_limit,
    )
    logger.info("Data store client initialized: %s", settings.supabase_url)
    return True


def get_data_store() -> SupabaseRESTClient | None:
    """Return the data store client, or None if not configured."""
    return _data_store


def close_data_store() -> None:
    """Drop the client reference. Call from app shutdown."""
    global _data_store
    _data_store = None
