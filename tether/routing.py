"""
Routing - ordered layer stacks with next-continuation dispatch.

A ``Router`` is an ordered list of layers. Each layer is one of:

- a route: matches one verb and a full path, runs its handler chain;
- a middleware/mount layer: matches a path prefix for every verb, runs its
  handler chain (a mounted ``Router`` is itself a handler);
- an error layer: only reached while an error is being forwarded.

Handlers are ``async (request, response, next)``; error handlers are
``async (error, request, response, next)``. Calling ``await next()`` hands
control to the next matching layer, ``await next(error)`` skips to the next
error layer. Layers are matched in registration order.

Path patterns support ``{name}`` and ``{name:type}`` segments where type is
one of ``str`` (default), ``int``, ``float``, ``path`` or ``uuid``.
"""

from __future__ import annotations

import functools
import logging
import re
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from .faults import PatternInvalidFault
from .request import Request
from .response import Response


logger = logging.getLogger("tether.routing")

Next = Callable[..., Awaitable[None]]
Handler = Callable[[Request, Response, Next], Awaitable[Any]]
ErrorHandler = Callable[[BaseException, Request, Response, Next], Awaitable[Any]]


class HTTPMethod(str, Enum):
    """HTTP verbs a route can be bound to. ``ALL`` matches every verb."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"
    ALL = "ALL"


# ============================================================================
# Path patterns
# ============================================================================

_PARAM_RE = re.compile(r"\{([A-Za-z_][A-Za-z0-9_]*)(?::([a-z]+))?\}")

_CONVERTERS: Dict[str, Tuple[str, Callable[[str], Any]]] = {
    "str": (r"[^/]+", str),
    "int": (r"-?\d+", int),
    "float": (r"-?\d+(?:\.\d+)?", float),
    "path": (r".+", str),
    "uuid": (r"[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}", uuid.UUID),
}


def normalize_path(path: str) -> str:
    """Ensure a leading slash and strip the trailing one (except for root)."""
    if not path.startswith("/"):
        path = "/" + path
    return path.rstrip("/") or "/"


def join_paths(*parts: str) -> str:
    """Join path fragments into one normalized path."""
    joined = "/".join(part.strip("/") for part in parts if part and part.strip("/"))
    return normalize_path(joined)


class PathPattern:
    """
    Compiled path template.

    ``end=True`` matches the whole path (routes); ``end=False`` matches a
    prefix ending on a segment boundary (mounts and middleware).
    """

    __slots__ = ("template", "end", "_regex", "_castors")

    def __init__(self, template: str, *, end: bool = True):
        self.template = normalize_path(template)
        self.end = end
        self._castors: Dict[str, Callable[[str], Any]] = {}
        self._regex = self._compile()

    def _compile(self) -> re.Pattern:
        if self.template == "/":
            return re.compile(r"^/?$" if self.end else r"^(?=/|$)")

        parts = []
        position = 0
        for match in _PARAM_RE.finditer(self.template):
            name, kind = match.group(1), match.group(2) or "str"
            if kind not in _CONVERTERS:
                raise PatternInvalidFault(self.template, f"unknown parameter type '{kind}'")
            if name in self._castors:
                raise PatternInvalidFault(self.template, f"duplicate parameter '{name}'")
            regex, castor = _CONVERTERS[kind]
            parts.append(re.escape(self.template[position:match.start()]))
            parts.append(f"(?P<{name}>{regex})")
            self._castors[name] = castor
            position = match.end()
        parts.append(re.escape(self.template[position:]))

        body = "".join(parts)
        tail = r"/?$" if self.end else r"(?=/|$)"
        return re.compile(f"^{body}{tail}")

    def match(self, path: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        """
        Match ``path``.

        Returns:
            ``(consumed, params)`` or None. ``consumed`` is the matched prefix
            (empty for the root prefix).
        """
        m = self._regex.match(path)
        if m is None:
            return None

        params: Dict[str, Any] = {}
        for name, castor in self._castors.items():
            try:
                params[name] = castor(m.group(name))
            except ValueError:
                return None

        return m.group(0).rstrip("/"), params

    def __repr__(self) -> str:
        return f"PathPattern({self.template!r}, end={self.end})"


# ============================================================================
# Layers
# ============================================================================

async def run_chain(
    handlers: Sequence[Handler],
    request: Request,
    response: Response,
    done: Next,
) -> None:
    """
    Run ``handlers`` in order, each continuing via its ``next`` argument.

    ``done`` is called when the last handler calls next, or as soon as any
    handler calls ``next(error)``.
    """
    async def step(index: int, error: Optional[BaseException] = None) -> None:
        if error is not None or index == len(handlers):
            await done(error)
            return
        await handlers[index](request, response, functools.partial(step, index + 1))

    await step(0)


class Layer:
    """One entry of a router stack."""

    __slots__ = ("pattern", "method", "handlers", "is_error", "mounts")

    def __init__(
        self,
        pattern: PathPattern,
        handlers: Sequence[Any],
        *,
        method: Optional[HTTPMethod] = None,
        is_error: bool = False,
        mounts: bool = False,
    ):
        self.pattern = pattern
        self.handlers = tuple(handlers)
        self.method = method
        self.is_error = is_error
        self.mounts = mounts

    @property
    def is_route(self) -> bool:
        return self.method is not None

    def accepts(self, method: str) -> bool:
        """GET routes also answer HEAD."""
        if self.method is HTTPMethod.ALL or self.method.value == method:
            return True
        return self.method is HTTPMethod.GET and method == "HEAD"

    def match(self, path: str, method: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        if self.method is not None and not self.accepts(method):
            return None
        return self.pattern.match(path)

    async def handle(self, request: Request, response: Response, next_: Next) -> None:
        await run_chain(self.handlers, request, response, next_)

    async def handle_error(
        self,
        error: BaseException,
        request: Request,
        response: Response,
        next_: Next,
    ) -> None:
        await self.handlers[0](error, request, response, next_)

    def __repr__(self) -> str:
        kind = "error" if self.is_error else (self.method.value if self.method else "use")
        return f"<Layer {kind} {self.pattern.template}>"


# ============================================================================
# Router
# ============================================================================

class Router:
    """
    Ordered stack of routes, middleware, mounts and error handlers.

    A router is itself a handler, so it can be mounted inside another router.

    Example:
        router = Router()
        router.get("/", list_users)
        router.get("/{id:int}", auth_required, get_user)
        app.mount("/users", router, request_logger)
    """

    def __init__(self):
        self.stack: List[Layer] = []

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_route(self, method: HTTPMethod | str, path: str, *handlers: Handler) -> Layer:
        """Register ``handlers`` as a chain for ``method path``."""
        if not handlers:
            raise ValueError(f"Route {method} {path} needs at least one handler")
        layer = Layer(PathPattern(path, end=True), handlers, method=HTTPMethod(method.upper()))
        self.stack.append(layer)
        return layer

    def get(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.GET, path, *handlers)

    def post(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.POST, path, *handlers)

    def put(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.PUT, path, *handlers)

    def patch(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.PATCH, path, *handlers)

    def delete(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.DELETE, path, *handlers)

    def head(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.HEAD, path, *handlers)

    def options(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.OPTIONS, path, *handlers)

    def all(self, path: str, *handlers: Handler) -> Layer:
        return self.add_route(HTTPMethod.ALL, path, *handlers)

    def use(self, *handlers: Handler, path: str = "/") -> Layer:
        """Register middleware for every request under ``path``."""
        if not handlers:
            raise ValueError("use() needs at least one handler")
        layer = Layer(PathPattern(path, end=False), handlers, mounts=True)
        self.stack.append(layer)
        return layer

    def mount(self, prefix: str, router: "Router", *middleware: Handler) -> Layer:
        """Mount ``router`` under ``prefix``, behind ``middleware``."""
        return self.use(*middleware, router, path=prefix)

    def use_error(self, *handlers: ErrorHandler, path: str = "/") -> None:
        """Register error handlers, each as its own layer."""
        for handler in handlers:
            self.stack.append(Layer(PathPattern(path, end=False), (handler,), is_error=True))

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    async def __call__(self, request: Request, response: Response, next_: Next) -> None:
        await self.handle(request, response, next_)

    async def handle(self, request: Request, response: Response, out: Next) -> None:
        """
        Walk the stack for ``request``, calling ``out`` when it is exhausted.

        Exceptions raised by a layer are forwarded as ``next(error)``.
        """
        base = request.base_path
        params = request.params
        index = 0

        async def next_(error: Optional[BaseException] = None) -> None:
            nonlocal index
            request.base_path = base
            request.params = params

            while index < len(self.stack):
                layer = self.stack[index]
                index += 1

                if layer.is_error != (error is not None):
                    continue

                matched = layer.match(request.route_path, request.method)
                if matched is None:
                    continue

                consumed, layer_params = matched
                if layer.mounts:
                    request.base_path = base + consumed
                request.params = {**params, **layer_params} if layer_params else params

                try:
                    if error is not None:
                        await layer.handle_error(error, request, response, next_)
                    else:
                        await layer.handle(request, response, next_)
                except Exception as exc:
                    logger.debug("Layer %r raised %r; forwarding", layer, exc)
                    await next_(exc)
                return

            request.base_path = base
            request.params = params
            await out(error)

        await next_()

    def routes(self, prefix: str = "") -> List[Tuple[str, str]]:
        """List ``(method, path)`` for every route reachable from this router."""
        found: List[Tuple[str, str]] = []
        for layer in self.stack:
            if layer.is_route:
                found.append((layer.method.value, join_paths(prefix, layer.pattern.template)))
            elif layer.mounts:
                for handler in layer.handlers:
                    if isinstance(handler, Router):
                        found.extend(handler.routes(join_paths(prefix, layer.pattern.template)))
        return found
