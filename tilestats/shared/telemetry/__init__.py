"""Logging setup, OpenTelemetry provider, and stat query spans."""

from tilestats.shared.telemetry.logging import setup_logging
from tilestats.shared.telemetry.telemetry import Telemetry, get_telemetry, set_telemetry
from tilestats.shared.telemetry.tracing import StatQuerySpan, current_trace_id

__all__ = [
    "setup_logging",
    "Telemetry",
    "get_telemetry",
    "set_telemetry",
    "StatQuerySpan",
    "current_trace_id",
]
