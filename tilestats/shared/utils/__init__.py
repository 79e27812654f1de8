"""Shared utilities (datetime helpers)."""

from tilestats.shared.utils.datetime import (
    ensure_utc,
    parse_datetime_utc,
    to_iso_utc,
    utc_now,
)

__all__ = ["ensure_utc", "parse_datetime_utc", "to_iso_utc", "utc_now"]
