"""
Controller Decorators

HTTP method decorators tag controller methods; ``@controller`` collects the
tags at class-definition time and writes the descriptors to a
``MetadataStore``. Nothing is bound to an application here.
"""

from typing import Any, Callable, List, Optional, TypeVar

from ..routing import HTTPMethod
from .metadata import ControllerDescriptor, MetadataStore, MethodDescriptor, metadata_store


F = TypeVar('F', bound=Callable[..., Any])
C = TypeVar('C', bound=type)


class RouteDecorator:
    """
    Base route decorator.

    Records ``(method, path, middleware)`` on the decorated function under
    ``__route_metadata__``. A function may carry several routes.
    """

    method: Optional[HTTPMethod] = None

    def __init__(self, path: str = "/", *middleware: Any):
        """
        Initialize route decorator.

        Args:
            path: Path template relative to the controller path
                  (e.g. "/", "/{id:int}")
            middleware: Handlers run before the controller method
        """
        self.path = path
        self.middleware = middleware

    def __call__(self, func: F) -> F:
        if not hasattr(func, '__route_metadata__'):
            func.__route_metadata__ = []

        func.__route_metadata__.append({
            'http_method': self.method,
            'path': self.path,
            'middleware': self.middleware,
            'func_name': func.__name__,
        })

        return func


class GET(RouteDecorator):
    """GET request decorator."""
    method = HTTPMethod.GET


class POST(RouteDecorator):
    """POST request decorator."""
    method = HTTPMethod.POST


class PUT(RouteDecorator):
    """PUT request decorator."""
    method = HTTPMethod.PUT


class PATCH(RouteDecorator):
    """PATCH request decorator."""
    method = HTTPMethod.PATCH


class DELETE(RouteDecorator):
    """DELETE request decorator."""
    method = HTTPMethod.DELETE


class HEAD(RouteDecorator):
    """HEAD request decorator."""
    method = HTTPMethod.HEAD


class OPTIONS(RouteDecorator):
    """OPTIONS request decorator."""
    method = HTTPMethod.OPTIONS


class ALL(RouteDecorator):
    """Matches every HTTP method."""
    method = HTTPMethod.ALL


def route(method: HTTPMethod | str, path: str = "/", *middleware: Any) -> Callable[[F], F]:
    """
    Generic route decorator.

    Example:
        @route("GET", "/health")
        async def health(self, request, response, next):
            return {"status": "ok"}
    """
    decorator = RouteDecorator(path, *middleware)
    decorator.method = HTTPMethod(method.upper())
    return decorator


def _collect_methods(cls: type) -> List[MethodDescriptor]:
    descriptors = []
    # Class body order; own attributes only
    for attr_name, attr in vars(cls).items():
        func = getattr(attr, '__func__', attr)
        for meta in getattr(func, '__route_metadata__', ()):
            descriptors.append(
                MethodDescriptor(
                    method=meta['http_method'],
                    path=meta['path'],
                    key=attr_name,
                    middleware=meta['middleware'],
                )
            )
    return descriptors


def controller(
    path: str = "/",
    *middleware: Any,
    name: Optional[str] = None,
    store: Optional[MetadataStore] = None,
) -> Callable[[C], C]:
    """
    Mark a class as a controller mounted at ``path``.

    Args:
        path: Base path of every route in the controller
        middleware: Handlers run before any route of the controller
        name: Container identity (defaults to the class name)
        store: Target store (defaults to the module-level ``metadata_store``)

    Example:
        @controller("/users", auth_required)
        class UsersController:
            @GET("/{id:int}")
            async def get_user(self, request, response, next):
                return {"id": request.params["id"]}
    """
    target_store = store if store is not None else metadata_store

    def decorate(cls: C) -> C:
        target_store.define_controller(
            cls,
            ControllerDescriptor(path=path, target=cls, middleware=middleware, name=name or ""),
        )
        for descriptor in _collect_methods(cls):
            target_store.define_method(cls, descriptor)
        return cls

    return decorate
