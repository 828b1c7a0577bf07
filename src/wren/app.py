"""Wren application class.

Mutable during setup (middleware, lifecycle hooks).
Frozen at runtime when app.run() or __call__() is first invoked.
"""

import logging
import threading
from collections.abc import Callable, Iterable
from typing import Any

from kida import Environment

from wren._internal.asgi import Receive, Scope, Send
from wren._internal.invoke import invoke
from wren.config import AppConfig
from wren.context import Handler
from wren.middleware.protocol import Middleware
from wren.routing.router import Router
from wren.server.errors import ErrorHandler, default_error_handler
from wren.server.handler import handle_request
from wren.templating.integration import create_environment

logger = logging.getLogger("wren.server")


class App:
    """The wren application.

    Wraps a route table (an ordered list of pipelines, or a single
    handler) and serves it over ASGI::

        app = App([
            pipe(GET, route("/"), text("Hello World")),
            pipe(GET, route("/ping"), text("pong")),
        ])
        app.add_middleware(auth)

    Mutable during setup (middleware, hooks). Frozen at runtime when
    ``app.run()`` or ``__call__()`` is first invoked.

    Thread safety:
        Freezing takes a lock and re-checks under it, so concurrent first
        requests build the router and views exactly once.
    """

    __slots__ = (
        "_error_handler",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_not_found",
        "_pipelines",
        # Built by _freeze()
        "_router",
        "_shutdown_hooks",
        "_startup_hooks",
        "_views",
        "config",
    )

    def __init__(
        self,
        pipelines: Iterable[Handler] | Handler,
        config: AppConfig | None = None,
        *,
        not_found: Handler | None = None,
        error_handler: ErrorHandler | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._pipelines: tuple[Handler, ...] = (
            (pipelines,) if callable(pipelines) else tuple(pipelines)
        )
        self._not_found = not_found
        self._error_handler: ErrorHandler = error_handler or default_error_handler
        self._middleware_list: list[Middleware] = []
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()

        # Built by _freeze()
        self._router: Router | None = None
        self._middleware: tuple[Callable[..., Any], ...] = ()
        self._views: Environment | None = None

    # -- Setup --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline.

        The first middleware added is the outermost.
        """
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Decorator: run *func* (sync or async) when the server starts.

        Startup hooks run in the order registered. If one raises, the
        server is told startup failed and no requests are served.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Decorator: run *func* (sync or async) when the server stops."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    @property
    def router(self) -> Router:
        """The compiled router (freezes the app on first access)."""
        self._ensure_frozen()
        assert self._router is not None
        return self._router

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Compile the app and serve it with pounce.

        Args:
            host: Override bind host.
            port: Override bind port.
        """
        self._ensure_frozen()
        logging.basicConfig(level=self.config.log_level.upper())

        from wren.server.dev import run_dev_server

        run_dev_server(
            self,
            host or self.config.host,
            port or self.config.port,
            reload=self.config.debug,
        )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point.

        Handles lifespan scopes directly, then delegates HTTP scopes to
        the request handler pipeline.
        """
        if scope["type"] == "lifespan":
            await self._handle_lifespan(scope, receive, send)
            return

        self._ensure_frozen()

        assert self._router is not None

        await handle_request(
            scope,
            receive,
            send,
            router=self._router,
            middleware=self._middleware,
            error_handler=self._error_handler,
            views=self._views,
            debug=self.config.debug,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Answer the server's lifespan messages.

        The app is frozen before any hook runs, so hooks see the final
        route table and view environment.
        """
        self._ensure_frozen()

        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    for hook in self._startup_hooks:
                        await invoke(hook)
                except Exception as exc:
                    logger.exception("Startup hook failed")
                    await send({"type": "lifespan.startup.failed", "message": str(exc)})
                    return
                await send({"type": "lifespan.startup.complete"})

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Internal --

    def _ensure_frozen(self) -> None:
        """Thread-safe freeze with double-check locking."""
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._freeze()

    def _freeze(self) -> None:
        """Build the router, middleware chain and views. Caller holds the lock."""
        self._router = Router(self._pipelines, not_found=self._not_found)
        self._middleware = tuple(self._middleware_list)
        self._views = create_environment(self.config)
        self._frozen = True

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Add middleware and hooks before calling app.run()."
            )
            raise RuntimeError(msg)
