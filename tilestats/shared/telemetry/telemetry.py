"""OpenTelemetry tracing for the tile stats service.

Built from settings at startup. Exporters: console (development), OTLP
gRPC, or none (spans are created but dropped). FastAPI requests and Redis
cache calls are instrumented; stat queries open their own spans in
tilestats.shared.telemetry.tracing.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.redis import RedisInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SpanExporter,
)
from opentelemetry.sdk.trace.sampling import ParentBased, TraceIdRatioBased

if TYPE_CHECKING:
    from tilestats.core.config import Settings

logger = logging.getLogger(__name__)

# Liveness probes would otherwise dominate the trace volume.
_EXCLUDED_URLS = "/api/v1/health"


def _build_exporter(exporter_type: str, otlp_endpoint: str | None) -> SpanExporter | None:
    if exporter_type == "none":
        return None
    if exporter_type == "otlp":
        if not otlp_endpoint:
            logger.warning("TELEMETRY_OTLP_ENDPOINT unset; falling back to console exporter")
            return ConsoleSpanExporter()
        return OTLPSpanExporter(
            endpoint=otlp_endpoint, insecure=otlp_endpoint.startswith("http://")
        )
    if exporter_type != "console":
        logger.warning("Unknown exporter type '%s', using console", exporter_type)
    return ConsoleSpanExporter()


class Telemetry:
    """Owns the tracer provider for the lifetime of the app."""

    def __init__(self, provider: TracerProvider, *, instrument_redis: bool = False) -> None:
        self.provider = provider
        self.instrument_redis = instrument_redis

    @classmethod
    def from_settings(cls, settings: Settings) -> Telemetry | None:
        """Create the provider and install it globally; None if setup fails."""
        resource = Resource(
            attributes={
                SERVICE_NAME: settings.app_name,
                SERVICE_VERSION: settings.app_version,
                "deployment.environment": settings.telemetry_environment,
            }
        )
        try:
            provider = TracerProvider(
                resource=resource,
                sampler=ParentBased(TraceIdRatioBased(settings.telemetry_sample_rate)),
            )
            exporter = _build_exporter(
                settings.telemetry_exporter, settings.telemetry_otlp_endpoint
            )
            if exporter is not None:
                provider.add_span_processor(BatchSpanProcessor(exporter))
        except Exception:
            logger.exception("Failed to initialize telemetry; tracing disabled")
            return None
        trace.set_tracer_provider(provider)
        logger.info(
            "OpenTelemetry initialized: service=%s exporter=%s sample_rate=%s",
            settings.app_name,
            settings.telemetry_exporter,
            settings.telemetry_sample_rate,
        )
        return cls(provider, instrument_redis=settings.redis_enabled)

    def instrument(self, app: FastAPI) -> None:
        """Instrument incoming requests and, when the cache is on, Redis calls."""
        FastAPIInstrumentor.instrument_app(
            app, tracer_provider=self.provider, excluded_urls=_EXCLUDED_URLS
        )
        if self.instrument_redis:
            RedisInstrumentor().instrument(tracer_provider=self.provider)

    def shutdown(self, app: FastAPI) -> None:
        """Remove instrumentation and flush pending spans."""
        FastAPIInstrumentor.uninstrument_app(app)
        if self.instrument_redis:
            RedisInstrumentor().uninstrument()
        self.provider.shutdown()


_telemetry: Telemetry | None = None
_telemetry_lock = threading.RLock()


def get_telemetry() -> Telemetry | None:
    """Return the process-wide telemetry instance (set at startup)."""
    with _telemetry_lock:
        return _telemetry


def set_telemetry(telemetry: Telemetry | None) -> None:
    """Set (or clear, with None) the process-wide telemetry instance."""
    global _telemetry
    with _telemetry_lock:
        _telemetry = telemetry
