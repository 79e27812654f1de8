"""Shared helpers: request context, telemetry, and utilities."""
