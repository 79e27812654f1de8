"""Request timeout middleware (raw ASGI).

Outer bound for a whole request. Stat queries carry their own, shorter
timeout and turn into per-stat errors; this only fires when the request
as a whole stalls. A 504 is sent only if no response has started yet.
"""

import asyncio
import logging

from starlette.responses import JSONResponse
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from tilestats.core.exception_handlers import error_body

logger = logging.getLogger(__name__)


class TimeoutMiddleware:
    def __init__(self, app: ASGIApp, timeout_seconds: float) -> None:
        self.app = app
        self.timeout_seconds = timeout_seconds

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def track_start(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await asyncio.wait_for(
                self.app(scope, receive, track_start), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Request timed out after %ss: %s %s",
                self.timeout_seconds,
                scope.get("method", ""),
                scope.get("path", ""),
            )
            if response_started:
                return
            response = JSONResponse(
                status_code=504,
                content=error_body(
                    "GATEWAY_TIMEOUT",
                    f"Request timed out after {self.timeout_seconds} seconds",
                    {"timeout_seconds": self.timeout_seconds},
                ),
            )
            await response(scope, receive, send)
