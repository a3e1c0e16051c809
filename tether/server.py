"""
ServerBuilder - assembles an Application from a container of controllers.

``build()`` runs in a fixed order:

1. the config callback (application-level middleware),
2. one mount per registered controller, in container registration order,
3. the error-config callback (error handlers),

and returns the application. Callbacks are stored by ``set_config`` and
``set_error_config`` and only run during ``build()``.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from .application import Application
from .config import ServerConfig
from .constants import TYPE
from .controller.binder import RouteBinder
from .controller.metadata import MetadataStore, metadata_store
from .middleware import RequestScopeMiddleware


ConfigFunction = Callable[[Application], Any]


class ServerBuilder:
    """
    Builds an ``Application`` whose routes come from decorated controllers.

    Example:
        container = Container()
        bind_controller(container, UsersController)

        app = (
            ServerBuilder(container)
            .set_config(lambda app: app.use(LoggingMiddleware()))
            .set_error_config(lambda app: app.use_error(ErrorHandler()))
            .build()
        )
    """

    def __init__(
        self,
        container: Any,
        *,
        app: Optional[Application] = None,
        metadata: Optional[MetadataStore] = None,
        config: Optional[ServerConfig] = None,
    ):
        self.container = container
        self.config = config or ServerConfig()
        self.metadata = metadata if metadata is not None else metadata_store
        self.app = app if app is not None else Application(debug=self.config.debug)
        self.logger = logging.getLogger("tether.server")
        self._config_fn: Optional[ConfigFunction] = None
        self._error_config_fn: Optional[ConfigFunction] = None
        self._built = False

        shutdown = getattr(container, "shutdown", None)
        if shutdown is not None:
            self.app.on_shutdown(shutdown)

    def set_config(self, fn: ConfigFunction) -> "ServerBuilder":
        """
        Set the callback that registers application-level middleware.

        The callback runs at the start of ``build()``. Chainable.
        """
        self._config_fn = fn
        return self

    def set_error_config(self, fn: ConfigFunction) -> "ServerBuilder":
        """
        Set the callback that registers error handlers.

        The callback runs after every controller is mounted. Chainable.
        """
        self._error_config_fn = fn
        return self

    def build(self) -> Application:
        """Apply middleware, controller routes and error handlers; return the app."""
        if self.config.request_scope:
            self.app.use(RequestScopeMiddleware(self.container))

        if self._config_fn is not None:
            self._config_fn(self.app)

        self.register_controllers()

        if self._error_config_fn is not None:
            self._error_config_fn(self.app)

        self._built = True
        return self.app

    def register_controllers(self) -> None:
        binder = RouteBinder(self.app, self.container, root_path=self.config.root_path)
        handles = self.container.get_all(TYPE.CONTROLLER)

        for handle in handles:
            target = handle.target
            if target is None:
                self.logger.warning(
                    "Controller provider %r has no known type; skipping", handle.name,
                )
                continue
            self.register_controller(binder, handle)

        self.logger.info("Registered %d controller(s)", len(handles))

    def register_controller(self, binder: RouteBinder, handle: Any) -> None:
        target = handle.target
        binder.bind(
            target,
            self.metadata.get_controller_metadata(target),
            self.metadata.get_method_metadata(target),
            name=handle.name,
        )

    def run(self, host: Optional[str] = None, port: Optional[int] = None) -> None:
        """Build (once) and serve the application with uvicorn."""
        import uvicorn

        host = host or self.config.host
        port = port or self.config.port
        log_level = self.config.log_level

        logging.basicConfig(
            level=getattr(logging, log_level.upper()),
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        )

        if not self._built:
            self.build()

        self.logger.info("Starting uvicorn server on %s:%s", host, port)
        uvicorn.run(self.app, host=host, port=port, log_level=log_level, lifespan="on")
