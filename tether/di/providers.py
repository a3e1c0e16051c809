"""
Provider implementations for different instantiation strategies.
"""

from typing import Any, Callable, Dict, Optional, Type, TypeVar
import inspect

from .core import ProviderMeta, ResolveCtx, token_to_key
from .errors import DIError


T = TypeVar("T")


class ClassProvider:
    """
    Provider that instantiates a class by resolving constructor dependencies.

    Supports async initialization via the ``async_init()`` convention.
    """

    __slots__ = ("_meta", "_cls", "_dependencies", "_has_async_init")

    def __init__(
        self,
        cls: Type[T],
        scope: str = "app",
        tags: tuple[str, ...] = (),
        token: Optional[Type | str] = None,
    ):
        self._cls = cls
        self._dependencies = self._extract_dependencies(cls)
        self._has_async_init = hasattr(cls, "async_init")

        self._meta = ProviderMeta(
            name=cls.__name__,
            token=token_to_key(token if token is not None else cls),
            scope=scope,
            tags=tags,
            module=cls.__module__,
            qualname=cls.__qualname__,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    @property
    def target(self) -> type:
        return self._cls

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Instantiate class by resolving dependencies."""
        resolved_deps = {}
        for dep_name, dep_info in self._dependencies.items():
            resolved = await ctx.container.resolve_async(
                dep_info["token"],
                tag=dep_info.get("tag"),
                optional=dep_info.get("optional", False),
            )
            # Let the constructor default apply when an optional dependency is missing
            if resolved is None and dep_info.get("optional"):
                continue
            resolved_deps[dep_name] = resolved

        instance = self._cls(**resolved_deps)

        if self._has_async_init:
            await instance.async_init()

        return instance

    async def shutdown(self) -> None:
        """No-op for class provider (instances handle their own shutdown)."""
        pass

    def _extract_dependencies(self, cls: Type) -> Dict[str, Dict[str, Any]]:
        """
        Extract dependencies from __init__ signature.

        Returns:
            Dict mapping parameter names to dependency info
        """
        deps = {}

        if cls.__init__ is object.__init__:
            return deps

        try:
            sig = inspect.signature(cls.__init__)
        except ValueError:
            return deps

        try:
            type_hints = inspect.get_annotations(cls.__init__, eval_str=True)
        except Exception:
            type_hints = {}

        for param_name, param in sig.parameters.items():
            if param_name in ("self", "cls"):
                continue

            if param.kind in (inspect.Parameter.VAR_POSITIONAL, inspect.Parameter.VAR_KEYWORD):
                continue

            annotation = type_hints.get(param_name, param.annotation)

            if annotation == inspect.Parameter.empty:
                # If default value exists, it's optional and we skip dependency injection
                if param.default != inspect.Parameter.empty:
                    continue

                raise DIError(
                    f"Missing type annotation for parameter '{param_name}' "
                    f"in {cls.__qualname__}.__init__"
                )

            dep_info = {"optional": param.default != inspect.Parameter.empty}
            dep_info.update(_parse_annotation(annotation))
            deps[param_name] = dep_info

        return deps


class FactoryProvider:
    """
    Provider that calls a factory function to produce instances.

    Supports both sync and async factories. Pass ``target`` when the factory
    builds a known type so enumeration can inspect it without calling it.
    """

    __slots__ = ("_meta", "_factory", "_is_async", "_dependencies", "_target")

    def __init__(
        self,
        factory: Callable,
        scope: str = "app",
        tags: tuple[str, ...] = (),
        token: Optional[Type | str] = None,
        name: Optional[str] = None,
        target: Optional[type] = None,
    ):
        self._factory = factory
        self._is_async = inspect.iscoroutinefunction(factory)
        self._dependencies = self._extract_dependencies(factory)
        self._target = target

        module = factory.__module__
        qualname = factory.__qualname__

        self._meta = ProviderMeta(
            name=name or factory.__name__,
            token=token_to_key(token) if token is not None else f"{module}.{qualname}",
            scope=scope,
            tags=tags,
            module=module,
            qualname=qualname,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    @property
    def target(self) -> Optional[type]:
        return self._target

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Call factory with resolved dependencies."""
        resolved_deps = {}
        for dep_name, dep_info in self._dependencies.items():
            resolved_deps[dep_name] = await ctx.container.resolve_async(
                dep_info["token"],
                tag=dep_info.get("tag"),
                optional=dep_info.get("optional", False),
            )

        if self._is_async:
            return await self._factory(**resolved_deps)
        return self._factory(**resolved_deps)

    async def shutdown(self) -> None:
        """No-op for factory provider."""
        pass

    def _extract_dependencies(self, factory: Callable) -> Dict[str, Dict[str, Any]]:
        """Extract dependencies from factory signature."""
        deps = {}
        sig = inspect.signature(factory)

        for param_name, param in sig.parameters.items():
            if param.annotation == inspect.Parameter.empty:
                # Factory parameters must be annotated
                continue

            dep_info = {"optional": param.default != inspect.Parameter.empty}
            dep_info.update(_parse_annotation(param.annotation))
            deps[param_name] = dep_info

        return deps


class ValueProvider:
    """Provider that returns a pre-bound constant value."""

    __slots__ = ("_meta", "_value")

    def __init__(
        self,
        value: Any,
        token: Type | str,
        name: Optional[str] = None,
        scope: str = "singleton",
        tags: tuple[str, ...] = (),
    ):
        self._value = value
        self._meta = ProviderMeta(
            name=name or "value",
            token=token_to_key(token),
            scope=scope,
            tags=tags,
        )

    @property
    def meta(self) -> ProviderMeta:
        return self._meta

    @property
    def target(self) -> type:
        return type(self._value)

    async def instantiate(self, ctx: ResolveCtx) -> Any:
        """Return pre-bound value."""
        return self._value

    async def shutdown(self) -> None:
        """No-op for value provider."""
        pass


def _parse_annotation(annotation: Any) -> Dict[str, Any]:
    """Parse a type annotation, honouring ``Annotated[T, Inject(...)]`` markers."""
    from typing import Annotated, get_args, get_origin

    if get_origin(annotation) is Annotated:
        args = get_args(annotation)
        result: Dict[str, Any] = {"token": args[0]}
        for meta in args[1:]:
            if getattr(meta, "_inject_token", None) is not None:
                result["token"] = meta._inject_token
            if getattr(meta, "_inject_tag", None) is not None:
                result["tag"] = meta._inject_tag
            if getattr(meta, "_inject_optional", False):
                result["optional"] = True
        return result

    return {"token": annotation}
