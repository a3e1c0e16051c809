"""
Handler Adapter - turns a (controller name, method key) pair into a host handler.

The adapter resolves a controller instance per request, invokes the bound
method with ``(request, response, next)`` and converts its result into a
response write, a forwarded error, or nothing.

Only failures of an awaitable result are forwarded by the adapter itself.
Exceptions raised synchronously by the method propagate to the router, which
forwards them to the error chain in the same way.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from ..constants import TYPE
from ..faults import HandlerNotFoundFault
from ..request import Request
from ..response import Response
from ..routing import Next
from .result import AlreadyWritten, Immediate, classify


logger = logging.getLogger("tether.adapter")


class HandlerAdapter:
    """
    Host handler bound to one controller method.

    Args:
        container: Container the controller is resolved from
        name: Identity the controller is registered under
        key: Name of the controller method to call
    """

    __slots__ = ("container", "name", "key")

    def __init__(self, container: Any, name: str, key: str):
        self.container = container
        self.name = name
        self.key = key

    async def __call__(self, request: Request, response: Response, next: Next) -> None:
        container = request.state.get("container", self.container)
        instance = await container.get_named(TYPE.CONTROLLER, self.name)

        method = getattr(instance, self.key, None)
        if not callable(method):
            raise HandlerNotFoundFault(self.name, self.key)

        result = classify(method(request, response, next), response)

        if isinstance(result, AlreadyWritten):
            return

        if isinstance(result, Immediate):
            self._write(result.value, response)
            return

        error: Optional[BaseException] = None
        try:
            value = await result.awaitable
        except Exception as exc:
            error = exc

        if error is not None:
            logger.debug("%s.%s failed with %r; forwarding", self.name, self.key, error)
            await next(error)
            return

        self._write(value, response)

    def _write(self, value: Any, response: Response) -> None:
        if value is None:
            return
        if response.sent:
            logger.debug("%s.%s returned a value after writing the response; ignoring", self.name, self.key)
            return
        response.send(value)

    def __repr__(self) -> str:
        return f"<HandlerAdapter {self.name}.{self.key}>"
