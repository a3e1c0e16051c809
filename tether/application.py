"""
Application - the root router, exposed as an ASGI 3 application.

The application owns the top-level layer stack. Requests walk it in
registration order; whatever is left unhandled reaches the final handler,
which answers 404 when no layer wrote a response and renders the error when
one was forwarded past every error handler.
"""

from __future__ import annotations

import functools
import inspect
import logging
from typing import Any, Awaitable, Callable, List, Optional

from .faults import RouteNotFoundFault
from .middleware import ErrorHandler
from .request import Request
from .response import Response
from .routing import Router


Hook = Callable[[], Any]


class Application(Router):
    """
    ASGI application with express-style layering.

    Example:
        app = Application()
        app.use(LoggingMiddleware())
        app.mount("/users", users_router)
        app.use_error(ErrorHandler())
    """

    def __init__(self, *, debug: bool = False, name: str = "tether"):
        super().__init__()
        self.debug = debug
        self.name = name
        self.logger = logging.getLogger("tether.application")
        self._final_errors = ErrorHandler(debug=debug)
        self._startup_hooks: List[Hook] = []
        self._shutdown_hooks: List[Hook] = []

    # ------------------------------------------------------------------
    # Lifecycle hooks
    # ------------------------------------------------------------------

    def on_startup(self, hook: Hook) -> Hook:
        """Register a (sync or async) callable run on ASGI lifespan startup."""
        self._startup_hooks.append(hook)
        return hook

    def on_shutdown(self, hook: Hook) -> Hook:
        """Register a (sync or async) callable run on ASGI lifespan shutdown."""
        self._shutdown_hooks.append(hook)
        return hook

    async def startup(self) -> None:
        for hook in self._startup_hooks:
            await _maybe_await(hook())

    async def shutdown(self) -> None:
        for hook in reversed(self._shutdown_hooks):
            await _maybe_await(hook())

    # ------------------------------------------------------------------
    # ASGI
    # ------------------------------------------------------------------

    async def __call__(self, scope: dict, receive: Callable[[], Awaitable[dict]], send: Callable[[dict], Awaitable[None]]) -> None:
        if scope["type"] == "http":
            await self.handle_http(scope, receive, send)
        elif scope["type"] == "lifespan":
            await self.handle_lifespan(receive, send)
        else:
            self.logger.warning("Unsupported ASGI scope type: %s", scope["type"])

    async def handle_http(self, scope: dict, receive: Callable, send: Callable) -> None:
        request = Request(scope, receive)
        response = Response(path=request.path)

        await self.dispatch(request, response)
        await response.send_asgi(send, head=request.method == "HEAD")

    async def dispatch(self, request: Request, response: Response) -> None:
        """Run ``request`` through the layer stack, leaving ``response`` written."""
        try:
            await self.handle(request, response, functools.partial(self._finalize, request, response))
        except Exception as exc:
            # Raised by the final handler itself
            if response.sent:
                self.logger.error(
                    "Error after response was sent for %s %s", request.method, request.path, exc_info=True,
                )
            else:
                self._final_errors.render(exc, request, response)

        if not response.sent:
            self.logger.debug("No body written for %s %s; ending empty", request.method, request.path)
            response.end()

    async def _finalize(self, request: Request, response: Response, error: Optional[BaseException] = None) -> None:
        if error is not None:
            if response.sent:
                self.logger.error(
                    "Unhandled error after response was sent for %s %s: %r",
                    request.method, request.path, error,
                )
                return
            self._final_errors.render(error, request, response)
            return

        if not response.sent:
            self._final_errors.render(RouteNotFoundFault(request.path, request.method), request, response)

    async def handle_lifespan(self, receive: Callable, send: Callable) -> None:
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                try:
                    await self.startup()
                except Exception as exc:
                    self.logger.error("Startup failed: %s", exc, exc_info=True)
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                try:
                    await self.shutdown()
                except Exception as exc:
                    self.logger.error("Shutdown failed: %s", exc, exc_info=True)
                    await send({"type": "lifespan.shutdown.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.shutdown.complete"})
                return


async def _maybe_await(result: Any) -> Any:
    if inspect.isawaitable(result):
        return await result
    return result
