"""
Controller Metadata - routing descriptors and the store that holds them.

Descriptors are plain frozen dataclasses. They are written into a
``MetadataStore`` either explicitly (``define_controller`` /
``define_method``) or by the decorators in ``tether.controller.decorators``,
and read back by the binder with a lookup keyed by the controller type.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from ..routing import HTTPMethod, normalize_path


logger = logging.getLogger("tether.metadata")


@dataclass(frozen=True)
class ControllerDescriptor:
    """
    Controller-level routing descriptor.

    Attributes:
        path: Base path every method path is relative to
        target: Controller class
        middleware: Chain run before the controller's sub-router
        name: Identity used to resolve the controller from the container
    """
    path: str
    target: type
    middleware: Tuple[Any, ...] = ()
    name: str = ""

    def __post_init__(self):
        object.__setattr__(self, "path", normalize_path(self.path))
        object.__setattr__(self, "middleware", tuple(self.middleware))
        if not self.name:
            object.__setattr__(self, "name", self.target.__name__)


@dataclass(frozen=True)
class MethodDescriptor:
    """
    Method-level routing descriptor.

    Attributes:
        method: HTTP verb
        path: Path relative to the controller base path
        key: Name of the controller method to invoke
        middleware: Chain run before the method itself
    """
    method: HTTPMethod
    path: str
    key: str
    middleware: Tuple[Any, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "method", HTTPMethod(self.method.upper()))
        object.__setattr__(self, "middleware", tuple(self.middleware))


@dataclass
class _Entry:
    controller: Optional[ControllerDescriptor] = None
    methods: List[MethodDescriptor] = field(default_factory=list)


class MetadataStore:
    """
    Registry of routing descriptors keyed by controller type.

    Lookups are exact: descriptors defined for a base class are not returned
    for its subclasses.
    """

    def __init__(self):
        self._entries: Dict[type, _Entry] = {}

    def define_controller(self, target: type, descriptor: ControllerDescriptor) -> None:
        """Attach (or replace) the controller descriptor of ``target``."""
        self._entries.setdefault(target, _Entry()).controller = descriptor
        logger.debug("Controller %s defined at %s", descriptor.name, descriptor.path)

    def define_method(self, target: type, descriptor: MethodDescriptor) -> None:
        """Append a method descriptor to ``target``, keeping definition order."""
        self._entries.setdefault(target, _Entry()).methods.append(descriptor)

    def get_controller_metadata(self, target: type) -> Optional[ControllerDescriptor]:
        entry = self._entries.get(target)
        return entry.controller if entry else None

    def get_method_metadata(self, target: type) -> Optional[List[MethodDescriptor]]:
        entry = self._entries.get(target)
        if entry is None or not entry.methods:
            return None
        return list(entry.methods)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, target: type) -> bool:
        return target in self._entries

    def __len__(self) -> int:
        return len(self._entries)


# Default store written by the decorators
metadata_store = MetadataStore()
