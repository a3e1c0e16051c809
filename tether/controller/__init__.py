"""
Tether Controllers - decorated classes whose methods become routes.

Example:
    @controller("/users")
    class UsersController:
        def __init__(self, repo: UserRepo):
            self.repo = repo

        @GET("/")
        async def list_users(self, request, response, next):
            return await self.repo.all()

    bind_controller(container, UsersController)
"""

from .metadata import (
    ControllerDescriptor,
    MethodDescriptor,
    MetadataStore,
    metadata_store,
)
from .decorators import (
    RouteDecorator,
    GET,
    POST,
    PUT,
    PATCH,
    DELETE,
    HEAD,
    OPTIONS,
    ALL,
    route,
    controller,
)
from .result import AlreadyWritten, Deferred, HandlerResult, Immediate, classify
from .adapter import HandlerAdapter
from .binder import RouteBinder
from .registration import bind_controller

__all__ = [
    "ControllerDescriptor",
    "MethodDescriptor",
    "MetadataStore",
    "metadata_store",
    "RouteDecorator",
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "HEAD",
    "OPTIONS",
    "ALL",
    "route",
    "controller",
    "AlreadyWritten",
    "Deferred",
    "HandlerResult",
    "Immediate",
    "classify",
    "HandlerAdapter",
    "RouteBinder",
    "bind_controller",
]
