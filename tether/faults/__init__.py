"""
Tether Faults - typed fault signals.

Every framework error is a ``Fault`` carrying a code, a domain and a public
flag, so the final error handler can map it to a response without guessing.
"""

from .core import (
    Fault,
    FaultDomain,
    Severity,
)

from .domains import (
    ConfigFault,
    ConfigInvalidFault,
    RoutingFault,
    RouteNotFoundFault,
    PatternInvalidFault,
    FlowFault,
    HandlerNotFoundFault,
    ResponseAlreadySentFault,
)

__all__ = [
    "Fault",
    "FaultDomain",
    "Severity",
    "ConfigFault",
    "ConfigInvalidFault",
    "RoutingFault",
    "RouteNotFoundFault",
    "PatternInvalidFault",
    "FlowFault",
    "HandlerNotFoundFault",
    "ResponseAlreadySentFault",
]
