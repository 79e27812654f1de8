"""HTTP middleware: timeout and request ID.

Applied in main app; order matters (first added = outermost).
"""

from tilestats.middleware.request_id import RequestIDMiddleware
from tilestats.middleware.timeout import TimeoutMiddleware

__all__ = [
    "RequestIDMiddleware",
    "TimeoutMiddleware",
]
