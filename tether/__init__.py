"""
Tether - bind decorated controller classes to an async router.

Controllers declare their routes with decorators, live in a DI container,
and are resolved per request. ``ServerBuilder`` mounts every registered
controller on an ASGI ``Application`` between a middleware callback and an
error-handler callback.
"""

__version__ = "0.1.0"

# ============================================================================
# Core
# ============================================================================

from .application import Application
from .config import ConfigLoader, ServerConfig
from .constants import TYPE
from .request import Request
from .response import Response
from .routing import HTTPMethod, Router
from .server import ServerBuilder

# ============================================================================
# Controllers
# ============================================================================

from .controller import (
    ALL,
    DELETE,
    GET,
    HEAD,
    OPTIONS,
    PATCH,
    POST,
    PUT,
    ControllerDescriptor,
    HandlerAdapter,
    MetadataStore,
    MethodDescriptor,
    RouteBinder,
    bind_controller,
    controller,
    metadata_store,
    route,
)

# ============================================================================
# DI, middleware, faults
# ============================================================================

from .di import ClassProvider, Container, FactoryProvider, ValueProvider
from .middleware import ErrorHandler, LoggingMiddleware, RequestIdMiddleware, RequestScopeMiddleware
from .faults import Fault, FaultDomain, HandlerNotFoundFault, RouteNotFoundFault

__all__ = [
    "Application",
    "ConfigLoader",
    "ServerConfig",
    "TYPE",
    "Request",
    "Response",
    "HTTPMethod",
    "Router",
    "ServerBuilder",
    "ALL",
    "DELETE",
    "GET",
    "HEAD",
    "OPTIONS",
    "PATCH",
    "POST",
    "PUT",
    "ControllerDescriptor",
    "HandlerAdapter",
    "MetadataStore",
    "MethodDescriptor",
    "RouteBinder",
    "bind_controller",
    "controller",
    "metadata_store",
    "route",
    "ClassProvider",
    "Container",
    "FactoryProvider",
    "ValueProvider",
    "ErrorHandler",
    "LoggingMiddleware",
    "RequestIdMiddleware",
    "RequestScopeMiddleware",
    "Fault",
    "FaultDomain",
    "HandlerNotFoundFault",
    "RouteNotFoundFault",
]
