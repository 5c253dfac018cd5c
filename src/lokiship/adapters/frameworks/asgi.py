"""ASGI request logging middleware.

Framework-agnostic: works with any ASGI server (uvicorn, hypercorn, daphne)
and any ASGI application, including FastAPI and Starlette apps.
"""

import fnmatch
import logging
import time
from collections.abc import Callable, Coroutine
from typing import Any

from lokiship.core.logs import level_for_status, request_completed, request_received
from lokiship.core.models import Level
from lokiship.core.ports import ShipperPort

logger = logging.getLogger(__name__)

# ASGI type aliases
Scope = dict[str, Any]
Receive = Callable[[], Coroutine[Any, Any, dict[str, Any]]]
Send = Callable[[dict[str, Any]], Coroutine[Any, Any, None]]
ASGIApp = Callable[[Scope, Receive, Send], Coroutine[Any, Any, None]]


class RequestLoggingMiddleware:
    """ASGI middleware that ships a log line before and after every request.

    The "received" line is enqueued before the wrapped app runs and the
    "completed" line, carrying the final status code and elapsed time, after
    it returns or raises. Neither call can fail the request.
    """

    def __init__(
        self,
        app: ASGIApp,
        shipper: ShipperPort,
        exclude_paths: list[str] | None = None,
    ) -> None:
        """Initialize the middleware with a wrapped app and a shipper.

        Args:
            app: The ASGI application to wrap.
            shipper: Destination for request log lines.
            exclude_paths: Paths that are not logged. Supports exact matches
                and wildcard patterns (e.g., "/internal/*").
        """
        self.app = app
        self.shipper = shipper
        self.exclude_paths = exclude_paths or []

    def _path_excluded(self, path: str) -> bool:
        """Check if path matches any pattern in exclude_paths."""
        return any(fnmatch.fnmatch(path, pattern) for pattern in self.exclude_paths)

    def _emit(self, level: Level, message: str) -> None:
        # @tra: Interceptor.NeverFails
        try:
            self.shipper.enqueue(level, message)
        except Exception:
            logger.exception("Failed to enqueue request log line")

    def on_request_start(self, method: str, path: str) -> None:
        """Record that a request arrived."""
        # @tra: Interceptor.Pair
        self._emit(Level.INFO, request_received(method, path))

    def on_request_end(
        self,
        method: str,
        path: str,
        status_code: int,
        duration: float | None = None,
    ) -> None:
        """Record the final status of a request."""
        self._emit(
            level_for_status(status_code),
            request_completed(method, path, status_code, duration),
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI callable interface that processes requests through the wrapped app."""
        # @tra: Interceptor.Passthrough
        # @tra: Interceptor.HandlerError
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope["method"]
        path = scope["path"]
        if self._path_excluded(path):
            await self.app(scope, receive, send)
            return

        self.on_request_start(method, path)
        start_time = time.perf_counter()
        status: int | None = None

        async def wrapped_send(message: dict[str, Any]) -> None:
            nonlocal status
            if message["type"] == "http.response.start":
                status = message["status"]
            await send(message)

        try:
            await self.app(scope, receive, wrapped_send)
        finally:
            # An app that raised before starting a response ends up as a 500
            duration = time.perf_counter() - start_time
            self.on_request_end(method, path, status or 500, duration)
