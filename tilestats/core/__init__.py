"""Core: settings, constants, exception handlers, lifespan, rate limiter."""

from tilestats.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
