"""
Handler results - what a controller method handed back.

A controller method may return a value, an awaitable producing one, or
nothing after writing the response itself. ``classify`` maps the raw return
value onto one of three tagged variants so the adapter can handle each case
explicitly.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from typing import Any, Awaitable, Union

from ..response import Response


@dataclass(frozen=True)
class Immediate:
    """A plain value returned synchronously (``None`` means nothing to write)."""
    value: Any


@dataclass(frozen=True)
class Deferred:
    """An awaitable (coroutine, task or future) that will settle later."""
    awaitable: Awaitable[Any]


@dataclass(frozen=True)
class AlreadyWritten:
    """The method wrote the response itself."""


HandlerResult = Union[Immediate, Deferred, AlreadyWritten]


def classify(value: Any, response: Response) -> HandlerResult:
    if inspect.isawaitable(value):
        return Deferred(value)
    if response.sent:
        return AlreadyWritten()
    return Immediate(value)
