"""Spans around individual stat queries.

The tracer comes from the global provider. Until telemetry is set up the
API hands out non-recording spans, so callers never branch on it.
"""

from __future__ import annotations

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from tilestats.domain.exceptions import QueryError

_tracer = trace.get_tracer("tilestats.stats")


def current_trace_id() -> str | None:
    """Hex trace id of the active span, for log correlation."""
    ctx = trace.get_current_span().get_span_context()
    if not ctx.is_valid:
        return None
    return format(ctx.trace_id, "032x")


class StatQuerySpan:
    """Span for one stat query, entered as the current span.

    A QueryError leaving the block is recorded as the span's error code;
    anything else is recorded as an exception. Both propagate.
    """

    def __init__(self, stat_id: str | None, operation: str, table: str) -> None:
        self.attributes = {
            "tile_stats.stat_id": stat_id or "",
            "tile_stats.operation": operation,
            "tile_stats.table": table,
        }
        self._manager = None
        self.span: trace.Span | None = None

    def __enter__(self) -> "StatQuerySpan":
        self._manager = _tracer.start_as_current_span(
            "tile_stats.query",
            attributes=self.attributes,
            record_exception=False,
            set_status_on_exception=False,
        )
        self.span = self._manager.__enter__()
        return self

    def __exit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        if self.span is not None:
            if isinstance(exc_val, QueryError):
                self.span.set_attribute("tile_stats.error_code", exc_val.code)
                self.span.set_status(Status(StatusCode.ERROR, exc_val.code))
            elif exc_val is not None:
                self.span.record_exception(exc_val)
                self.span.set_status(Status(StatusCode.ERROR, type(exc_val).__name__))
        if self._manager is not None:
            self._manager.__exit__(exc_type, exc_val, exc_tb)
