"""Hosted data store access over the PostgREST (Supabase) REST API."""

from tilestats.infrastructure.datastore._rest_client import SupabaseRESTClient
from tilestats.infrastructure.datastore.client import (
    close_data_store,
    get_data_store,
    init_data_store,
)
from tilestats.infrastructure.datastore.filters import render_filter, render_filters

__all__ = [
    "SupabaseRESTClient",
    "close_data_store",
    "get_data_store",
    "init_data_store",
    "render_filter",
    "render_filters",
]
