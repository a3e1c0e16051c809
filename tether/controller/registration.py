"""
Controller registration helpers.
"""

from typing import Any, Optional

from ..constants import TYPE
from ..di import ClassProvider
from .metadata import MetadataStore, metadata_store


def bind_controller(
    container: Any,
    cls: type,
    *,
    name: Optional[str] = None,
    scope: str = "transient",
    store: Optional[MetadataStore] = None,
) -> str:
    """
    Register ``cls`` in ``container`` as a controller.

    The registration tag is ``name``, else the name from the controller
    descriptor, else the class name. The server resolves the controller by
    this tag on every request.

    Returns:
        The tag the controller was registered under.
    """
    source = store if store is not None else metadata_store
    descriptor = source.get_controller_metadata(cls)
    tag = name or (descriptor.name if descriptor else cls.__name__)

    container.register(ClassProvider(cls, scope=scope, token=TYPE.CONTROLLER), tag=tag)
    return tag
