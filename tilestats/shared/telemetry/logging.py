"""Logging setup: one stdout handler, request and trace ids on every record."""

import logging
import sys

from tilestats.core.config import get_settings
from tilestats.shared.context import get_request_id
from tilestats.shared.telemetry.tracing import current_trace_id

LOG_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - "
    "[req=%(request_id)s trace=%(trace_id)s] %(message)s"
)

# Chatty per-request loggers from the HTTP stack.
_QUIET_LOGGERS = ("httpx", "httpcore")


class LogContextFilter(logging.Filter):
    """Stamp records with the current request id and trace id ('-' when absent)."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id() or "-"
        record.trace_id = current_trace_id() or "-"
        return True


def setup_logging() -> None:
    """Configure root logging once per process.

    DEBUG when settings.debug is set, otherwise INFO. httpx request lines
    are only shown in debug mode.
    """
    settings = get_settings()
    level = logging.DEBUG if settings.debug else logging.INFO
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(LogContextFilter())
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler])
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if settings.debug else logging.WARNING)
