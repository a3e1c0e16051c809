"""
Middleware - ready-made handlers for the routing layer.

Middleware shares the handler signature ``async (request, response, next)``
and continues the chain with ``await next()``. ``ErrorHandler`` is an error
handler (``async (error, request, response, next)``) for ``app.use_error``.
"""

from __future__ import annotations

import logging
import os
import time
import traceback
from typing import Any, Dict, Optional

from .faults import Fault
from .request import Request
from .response import Response
from .routing import Next


class RequestIdMiddleware:
    """Adds a unique request ID to each request and echoes it in the response."""

    def __init__(self, header_name: str = "X-Request-ID"):
        self.header_name = header_name

    async def __call__(self, request: Request, response: Response, next: Next) -> None:
        request_id = request.header(self.header_name) or os.urandom(16).hex()
        request.state["request_id"] = request_id
        response.set_header(self.header_name, request_id)
        await next()


class LoggingMiddleware:
    """Logs request/response with timing."""

    def __init__(self, slow_threshold_ms: float = 1000.0):
        self.logger = logging.getLogger("tether.requests")
        self.slow_threshold_ms = slow_threshold_ms

    async def __call__(self, request: Request, response: Response, next: Next) -> None:
        if not self.logger.isEnabledFor(logging.INFO):
            await next()
            return

        start = time.monotonic()
        await next()
        elapsed_ms = (time.monotonic() - start) * 1000.0

        self.logger.info(
            "%s %s - %d (%.1fms)",
            request.method, request.path, response.status, elapsed_ms,
        )

        if elapsed_ms > self.slow_threshold_ms:
            self.logger.warning(
                "Slow request: %s %s took %.1fms",
                request.method, request.path, elapsed_ms,
            )


class RequestScopeMiddleware:
    """
    Opens a request-scoped child container for the rest of the chain.

    The child is stored in ``request.state["container"]`` and shut down once
    the downstream chain has finished.
    """

    def __init__(self, container: Any):
        self.container = container

    async def __call__(self, request: Request, response: Response, next: Next) -> None:
        scoped = self.container.create_request_scope()
        request.state["container"] = scoped
        try:
            await next()
        finally:
            await scoped.shutdown()


class ErrorHandler:
    """
    Converts forwarded errors into JSON error responses.

    Faults answer with their own status and, when public (or in debug mode),
    their message. Anything else is a 500 with the detail hidden unless
    ``debug`` is on.
    """

    def __init__(self, debug: bool = False):
        self.debug = debug
        self.logger = logging.getLogger("tether.errors")

    async def __call__(
        self,
        error: BaseException,
        request: Request,
        response: Response,
        next: Next,
    ) -> None:
        if response.sent:
            self.logger.error(
                "Error after response was sent for %s %s: %r",
                request.method, request.path, error,
            )
            return
        self.render(error, request, response)

    def render(self, error: BaseException, request: Request, response: Response) -> None:
        """Log ``error`` and write the matching error body."""
        if isinstance(error, Fault):
            status = error.http_status
            message = error.message if (error.public or self.debug) else "Internal server error"

            if status >= 500:
                self.logger.error("Fault %s: %s", error.code, error.message)
            else:
                self.logger.warning("Fault %s: %s", error.code, error.message)

            response.json(
                {
                    "error": {
                        "code": error.code,
                        "message": message,
                        "domain": error.domain.value,
                    }
                },
                status=status,
            )
            return

        self.logger.error(
            "Unhandled exception on %s %s: %s",
            request.method, request.path, error,
            exc_info=(type(error), error, error.__traceback__),
        )

        error_data: Dict[str, Optional[str]] = {"error": "Internal server error"}
        if self.debug:
            error_data["detail"] = str(error)
            error_data["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )

        response.json(error_data, status=500)
