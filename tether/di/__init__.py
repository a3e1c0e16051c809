"""
Tether DI - explicit provider registry with scoped resolution.

Example:
    container = Container()
    container.register(ClassProvider(UserRepo, scope="singleton"))
    container.register(ClassProvider(UsersController, scope="transient",
                                     token=TYPE.CONTROLLER), tag="UsersController")

    handles = container.get_all(TYPE.CONTROLLER)
    controller = await container.get_named(TYPE.CONTROLLER, "UsersController")
"""

from .core import Container, Provider, ProviderHandle, ProviderMeta, ResolveCtx
from .providers import ClassProvider, FactoryProvider, ValueProvider
from .scopes import ServiceScope
from .decorators import Inject, inject
from .errors import DIError, ProviderNotFoundError

__all__ = [
    "Container",
    "Provider",
    "ProviderHandle",
    "ProviderMeta",
    "ResolveCtx",
    "ClassProvider",
    "FactoryProvider",
    "ValueProvider",
    "ServiceScope",
    "Inject",
    "inject",
    "DIError",
    "ProviderNotFoundError",
]
