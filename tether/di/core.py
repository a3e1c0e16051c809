"""
Core DI types and the Container.

The container is an explicit registry keyed by ``(token, tag)``. Tokens are
either types or plain strings; a string token used as a *kind* (for instance
``TYPE.CONTROLLER``) groups every provider registered under it, and the tag is
the name used for lookups inside that kind.
"""

from typing import (
    Any,
    Callable,
    Coroutine,
    Dict,
    List,
    Optional,
    Protocol,
    Type,
    TypeVar,
    runtime_checkable,
)
from dataclasses import dataclass, field
import inspect
import logging

from .scopes import CACHEABLE_SCOPES, ROOT_SCOPES

logger = logging.getLogger("tether.di")

# Module-level cache: type → "module.qualname" string
_type_key_cache: Dict[type, str] = {}


T = TypeVar("T")


def token_to_key(token: Any) -> str:
    """Convert a type or string token to its registry key."""
    if isinstance(token, str):
        return token
    if isinstance(token, type):
        key = _type_key_cache.get(token)
        if key is None:
            key = f"{token.__module__}.{token.__qualname__}"
            _type_key_cache[token] = key
        return key
    return str(token)


@dataclass(frozen=True, slots=True)
class ProviderMeta:
    """Compact provider metadata."""
    name: str
    token: str  # Type name or string key
    scope: str  # "singleton", "app", "request", "transient"
    tags: tuple[str, ...] = field(default_factory=tuple)
    module: str = ""
    qualname: str = ""


class ResolveCtx:
    """
    Context for resolution operations.

    Tracks the resolution stack for diagnostics.
    """
    __slots__ = ("container", "stack")

    def __init__(self, container: "Container"):
        self.container = container
        self.stack: List[str] = []

    def push(self, token: str) -> None:
        self.stack.append(token)

    def pop(self) -> None:
        self.stack.pop()


@runtime_checkable
class Provider(Protocol):
    """
    Provider protocol - how to instantiate a dependency.
    """

    @property
    def meta(self) -> ProviderMeta:
        ...

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        ...

    async def shutdown(self) -> None:
        ...


@dataclass(frozen=True)
class ProviderHandle:
    """
    Typed handle to one provider registered under a kind.

    Lets callers inspect what a provider builds (``target``) without
    instantiating it, and resolve it on demand.
    """
    kind: str
    name: Optional[str]
    provider: Provider
    container: "Container"

    @property
    def target(self) -> Optional[type]:
        """The type this provider produces, if known."""
        return getattr(self.provider, "target", None)

    async def resolve(self) -> Any:
        """Resolve a (possibly fresh) instance through the owning container."""
        return await self.container.resolve_async(self.kind, tag=self.name)


class Container:
    """
    DI Container - manages provider instances and scopes.

    Singleton/app providers are cached in the root container, request
    providers in the request-scoped child that resolved them, and transient
    providers are never cached.
    """

    __slots__ = (
        "_providers",
        "_kinds",
        "_cache",
        "_scope",
        "_parent",
        "_finalizers",
    )

    def __init__(
        self,
        scope: str = "app",
        parent: Optional["Container"] = None,
    ):
        self._providers: Dict[str, Provider] = {}  # {cache_key: provider}
        self._kinds: Dict[str, List[Optional[str]]] = {}  # {token: [tag, ...]} in registration order
        self._cache: Dict[str, Any] = {}  # {cache_key: instance}
        self._scope = scope
        self._parent = parent
        self._finalizers: List[Callable[[], Coroutine]] = []  # LIFO cleanup

    @property
    def scope(self) -> str:
        return self._scope

    def register(self, provider: Provider, tag: Optional[str] = None):
        """
        Register a provider.

        Args:
            provider: Provider instance
            tag: Optional tag for disambiguation (the name inside a kind)
        """
        token = provider.meta.token
        key = self._make_cache_key(token, tag)

        if key in self._providers:
            existing = self._providers[key]
            # Idempotency: if same provider, ignore. If different, error.
            if existing == provider:
                return
            raise ValueError(
                f"Provider for {token} (tag={tag}) already registered: {existing.meta.name}"
            )

        self._providers[key] = provider
        self._kinds.setdefault(token, []).append(tag)
        logger.debug("Registered provider %s for %s (tag=%s)", provider.meta.name, token, tag)

    def bind(self, interface: Type, implementation: Type, scope: str = "app", tag: Optional[str] = None):
        """
        Bind an interface to an implementation class.

        Example:
            container.bind(UserRepository, SqlUserRepository)
        """
        from .providers import ClassProvider
        self.register(ClassProvider(implementation, scope=scope, token=interface), tag=tag)

    def register_instance(
        self,
        token: Type[T] | str,
        instance: T,
        scope: str = "singleton",
        tag: Optional[str] = None,
    ):
        """Register a pre-instantiated object as a provider."""
        from .providers import ValueProvider

        provider = ValueProvider(
            value=instance,
            token=token,
            scope=scope,
            name=f"{token.__name__ if hasattr(token, '__name__') else token}_instance",
        )
        self.register(provider, tag=tag)

    async def resolve_async(
        self,
        token: Type[T] | str,
        *,
        tag: Optional[str] = None,
        optional: bool = False,
    ) -> T:
        """
        Resolve a dependency.

        Raises:
            ProviderNotFoundError: If provider not found and not optional
        """
        token_key = token_to_key(token)
        cache_key = self._make_cache_key(token_key, tag)

        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        provider = self._lookup_provider(token_key, tag)

        if provider is None:
            if optional:
                return None
            self._raise_not_found(token_key, tag)

        # Scope delegation: singleton/app → parent
        if self._parent and provider.meta.scope in ROOT_SCOPES:
            return await self._parent.resolve_async(token, tag=tag, optional=optional)

        ctx = ResolveCtx(container=self)
        ctx.push(cache_key)

        try:
            instance = await provider.instantiate(ctx)

            if provider.meta.scope in CACHEABLE_SCOPES:
                self._cache[cache_key] = instance
                self._register_finalizer(instance)

            return instance
        finally:
            ctx.pop()

    def get_all(self, kind: Type | str) -> List[ProviderHandle]:
        """
        Enumerate every provider registered under ``kind``.

        Returns handles in registration order; nothing is instantiated.
        """
        token_key = token_to_key(kind)
        return [
            ProviderHandle(
                kind=token_key,
                name=tag,
                provider=self._providers[self._make_cache_key(token_key, tag)],
                container=self,
            )
            for tag in self._kinds.get(token_key, ())
        ]

    async def get_named(self, kind: Type | str, name: str) -> Any:
        """Resolve the provider registered under ``kind`` with tag ``name``."""
        return await self.resolve_async(kind, tag=name)

    def is_registered(self, token: Type[T] | str, tag: Optional[str] = None) -> bool:
        """Check if a provider is registered for the token."""
        return self._lookup_provider(token_to_key(token), tag) is not None

    def create_request_scope(self) -> "Container":
        """
        Create a request-scoped child container (very cheap).

        Providers are shared by reference; the instance cache is fresh.
        """
        child = Container.__new__(Container)
        child._providers = self._providers
        child._kinds = self._kinds
        child._cache = {}
        child._scope = "request"
        child._parent = self
        child._finalizers = []
        return child

    async def shutdown(self) -> None:
        """
        Shutdown container - run finalizers in LIFO order.
        """
        if not self._finalizers and not self._cache:
            return

        for finalizer in reversed(self._finalizers):
            try:
                result = finalizer()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.warning("Error during finalizer in %s container", self._scope, exc_info=True)

        self._finalizers.clear()
        self._cache.clear()

    def _make_cache_key(self, token: str, tag: Optional[str]) -> str:
        """Create cache key from token and tag."""
        if tag:
            return f"{token}#{tag}"
        return token

    def _lookup_provider(
        self,
        token: str,
        tag: Optional[str],
    ) -> Optional[Provider]:
        """Lookup provider in current container or parent."""
        key = self._make_cache_key(token, tag)
        if key in self._providers:
            return self._providers[key]

        if self._parent:
            return self._parent._lookup_provider(token, tag)

        return None

    def _register_finalizer(self, instance: Any) -> None:
        """Register finalizer for cleanup."""
        if hasattr(instance, "__aexit__"):
            self._finalizers.append(
                lambda: instance.__aexit__(None, None, None)
            )
        elif hasattr(instance, "shutdown"):
            self._finalizers.append(instance.shutdown)

    def _raise_not_found(self, token: str, tag: Optional[str]) -> None:
        """Raise ProviderNotFoundError with similar keys as candidates."""
        from .errors import ProviderNotFoundError

        candidates = [key for key in self._providers if token in key]

        raise ProviderNotFoundError(
            token=token,
            tag=tag,
            candidates=candidates,
        )
