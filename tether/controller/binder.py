"""
Route Binder - mounts one controller's routes on an application.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

from ..routing import Router, join_paths
from .adapter import HandlerAdapter
from .metadata import ControllerDescriptor, MethodDescriptor


logger = logging.getLogger("tether.binder")


class RouteBinder:
    """
    Binds controller descriptors onto an application.

    Each controller gets a fresh sub-router holding one route per method
    descriptor (method middleware first, then the adapter). The sub-router is
    mounted at ``root_path + controller.path`` behind the controller
    middleware.
    """

    def __init__(self, app: Router, container: Any, *, root_path: str = "/"):
        self.app = app
        self.container = container
        self.root_path = root_path

    def bind(
        self,
        target: type,
        controller: Optional[ControllerDescriptor],
        methods: Optional[Sequence[MethodDescriptor]],
        *,
        name: Optional[str] = None,
    ) -> Optional[Router]:
        """
        Mount the routes of ``target``.

        ``name`` is the tag the controller is registered under in the
        container; it defaults to the descriptor name.
        """
        if controller is None or not methods:
            logger.debug("Skipping %s: no controller or method metadata", target.__name__)
            return None

        name = name or controller.name
        router = Router()
        for descriptor in methods:
            adapter = HandlerAdapter(self.container, name, descriptor.key)
            router.add_route(descriptor.method, descriptor.path, *descriptor.middleware, adapter)

        mount_path = join_paths(self.root_path, controller.path)
        self.app.mount(mount_path, router, *controller.middleware)

        logger.debug(
            "Mounted %s at %s (%d routes)", name, mount_path, len(methods),
        )
        return router
