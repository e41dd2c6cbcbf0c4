"""Zen application class.

Mutable during setup (middleware, filters, lifecycle hooks).
Frozen at runtime when app.run() or __call__() is first invoked: the
route table is built (or, in dev mode, the live resolver is set up),
the kida environment is created and the session middleware installed.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import secrets
import threading
import time
from collections.abc import Callable
from functools import partial
from typing import TYPE_CHECKING, Any

from kida import Environment

from zen._internal.asgi import Receive, Scope, Send
from zen._internal.invoke import invoke
from zen.config import AppConfig
from zen.errors import ConfigurationError
from zen.http.request import Request
from zen.http.response import Response, SSEResponse
from zen.middleware.protocol import Middleware
from zen.middleware.sessions import (
    MemorySessionStore,
    RedisSessionStore,
    Session,
    SessionConfig,
    SessionMiddleware,
    SessionStore,
    get_session,
)
from zen.pages.context import build_action_context, build_page_context, parse_action_body
from zen.pages.discovery import CachedRouteTable, LiveRouteTable, PageEndpoint, RouteTable
from zen.pages.snapshot import save_snapshot
from zen.pages.types import Page
from zen.realtime.events import EventStream
from zen.routing.route import Route
from zen.routing.router import Router
from zen.server.errors import ACTION_PREFIX
from zen.server.handler import handle_request
from zen.server.reload import RELOAD_PATH, ReloadBroadcaster, watch_for_changes
from zen.server.terminal_errors import error_location, log_error
from zen.templating.integration import create_environment
from zen.templating.pipeline import Renderer
from zen.templating.styles import StyleSheet, UtilityStyleSheet

if TYPE_CHECKING:
    from zen.data.database import Database

logger = logging.getLogger("zen.server")

_GET = frozenset({"GET"})
_POST = frozenset({"POST"})


def _current_session() -> Session | None:
    try:
        return get_session()
    except LookupError:
        return None


class App:
    """The zen application.

    Pages are templates under ``config.pages_dir``; actions are Python
    modules under ``config.actions_dir``::

        app = App(AppConfig(dev=True, secret_key="s3cr3t"))

        @app.template_filter()
        def shout(value):
            return str(value).upper()

        app.run()

    Thread safety:
        The setup phase is single-threaded. The freeze transition uses
        a Lock + double-check so exactly one thread builds the route
        table, even when several workers call ``__call__()`` on their
        first request.
    """

    __slots__ = (
        "_broadcaster",
        "_custom_kida_env",
        "_db",
        "_freeze_lock",
        "_frozen",
        "_middleware",
        "_middleware_list",
        "_nocache",
        "_renderer",
        # Compiled state (populated by _freeze)
        "_router",
        "_routes",
        "_session_store",
        "_sessions",
        "_shutdown_hooks",
        "_startup_hooks",
        "_stylesheet",
        "_template_filters",
        "_template_globals",
        "_watch_task",
        "config",
    )

    def __init__(
        self,
        config: AppConfig | None = None,
        *,
        db: Database | str | None = None,
        session_store: SessionStore | None = None,
        kida_env: Environment | None = None,
        stylesheet: StyleSheet | None = None,
    ) -> None:
        self.config: AppConfig = config or AppConfig()
        self._middleware_list: list[Middleware] = []
        self._template_filters: dict[str, Callable[..., Any]] = {}
        self._template_globals: dict[str, Any] = {}
        self._startup_hooks: list[Callable[..., Any]] = []
        self._shutdown_hooks: list[Callable[..., Any]] = []
        self._frozen: bool = False
        self._freeze_lock: threading.Lock = threading.Lock()
        self._custom_kida_env: Environment | None = kida_env
        self._session_store: SessionStore | None = session_store
        self._stylesheet: StyleSheet = stylesheet if stylesheet is not None else UtilityStyleSheet()

        # Database: an instance, a URL, or config.database_url
        if db is None:
            db = self.config.database_url
        if isinstance(db, str):
            from zen.data.database import Database as _Database

            self._db: Database | None = _Database(db)
        else:
            self._db = db

        self._broadcaster: ReloadBroadcaster = ReloadBroadcaster()
        self._watch_task: asyncio.Task[None] | None = None

        # Compiled state, set during _freeze()
        self._router: Router | None = None
        self._routes: RouteTable | None = None
        self._renderer: Renderer | None = None
        self._sessions: SessionMiddleware | None = None
        self._middleware: tuple[Middleware, ...] = ()
        self._nocache: int = 0

    # -- Properties --

    @property
    def db(self) -> Database:
        """The database instance.

        Raises ``RuntimeError`` if no database was configured on this app.
        """
        if self._db is None:
            msg = "No database configured. Pass db= to App() or set AppConfig.database_url."
            raise RuntimeError(msg)
        return self._db

    @property
    def routes(self) -> RouteTable:
        """The route table (cached or live), built on first access."""
        self._ensure_frozen()
        assert self._routes is not None
        return self._routes

    @property
    def reload_broadcaster(self) -> ReloadBroadcaster:
        return self._broadcaster

    # -- Middleware --

    def add_middleware(self, middleware: Middleware) -> None:
        """Add a middleware to the pipeline (inside the session middleware)."""
        self._check_not_frozen()
        self._middleware_list.append(middleware)

    # -- Template integration --

    def template_filter(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template filter."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_filters[name or func.__name__] = func
            return func

        return decorator

    def template_global(
        self,
        name: str | None = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Register a kida template global."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self._check_not_frozen()
            self._template_globals[name or func.__name__] = func
            return func

        return decorator

    # -- Lifecycle hooks --

    def on_startup(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync startup hook via decorator.

        Hooks run in registration order during ASGI lifespan startup,
        after the database is connected.
        """
        self._check_not_frozen()
        self._startup_hooks.append(func)
        return func

    def on_shutdown(self, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register an async or sync shutdown hook via decorator."""
        self._check_not_frozen()
        self._shutdown_hooks.append(func)
        return func

    # -- Server --

    def run(self, host: str | None = None, port: int | None = None) -> None:
        """Start the server: pounce dev server in dev mode, else production."""
        self._ensure_frozen()

        _host = host or self.config.host
        _port = port or self.config.port

        if self.config.dev:
            from zen.server.dev import run_dev_server

            run_dev_server(self, _host, _port, log_level=self.config.log_level)
        else:
            from zen.server.production import run_production_server

            run_production_server(
                self,
                host=_host,
                port=_port,
                workers=self.config.workers,
                log_level=self.config.log_level,
            )

    # -- ASGI interface --

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
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
            render_not_found=self._render_not_found,
            debug=self.config.dev,
            db=self._db,
        )

    async def _handle_lifespan(
        self,
        scope: Scope,
        receive: Receive,
        send: Send,
    ) -> None:
        """Run the ASGI lifespan protocol.

        Freezes the app, connects the database, starts the dev watch
        loop and runs the startup hooks. Any failure is reported as
        ``lifespan.startup.failed``.
        """
        while True:
            message = await receive()
            msg_type = message["type"]

            if msg_type == "lifespan.startup":
                try:
                    self._ensure_frozen()
                    if self._db is not None:
                        await self._db.connect()
                        from zen.data.database import _db_var

                        _db_var.set(self._db)

                    if self.config.dev:
                        self._start_watcher()

                    for hook in self._startup_hooks:
                        await invoke(hook)
                    await send({"type": "lifespan.startup.complete"})
                except Exception as exc:
                    logger.error("Startup failed: %s", exc)
                    await send(
                        {
                            "type": "lifespan.startup.failed",
                            "message": str(exc),
                        }
                    )
                    return

            elif msg_type == "lifespan.shutdown":
                for hook in self._shutdown_hooks:
                    await invoke(hook)
                await self._stop_watcher()

                if self._db is not None:
                    await self._db.disconnect()

                if isinstance(self._session_store, RedisSessionStore):
                    await self._session_store.close()
                await send({"type": "lifespan.shutdown.complete"})
                return

    # -- Dev reload --

    def _start_watcher(self) -> None:
        routes = self._routes
        on_change = routes.invalidate if isinstance(routes, LiveRouteTable) else None
        self._watch_task = asyncio.create_task(
            watch_for_changes(
                (self.config.pages_path, self.config.actions_path, self.config.static_path),
                self.config.static_path,
                self._broadcaster,
                debounce_ms=self.config.reload_debounce_ms,
                on_change=on_change,
            )
        )

    async def _stop_watcher(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _reload_endpoint(self, request: Request) -> SSEResponse:
        logger.debug("Reload channel opened by %s", request.ip or "unknown client")
        return SSEResponse(EventStream(self._broadcaster.subscribe()))

    # -- Pages --

    async def _page_endpoint(self, request: Request) -> Response:
        """Resolve and serve a page (live table, or the cached catch-all)."""
        assert self._routes is not None
        resolved = self._routes.resolve_page(request.path)
        if resolved is None:
            return await self._render_not_found(request)
        return await self._serve_page(request, resolved.page, resolved.params)

    async def _cached_endpoint(self, entry: PageEndpoint, request: Request) -> Response:
        return await self._serve_page(request, entry.page, request.path_params)

    async def _serve_page(self, request: Request, page: Page, params: dict[str, str]) -> Response:
        """Run the init stack, then persist the snapshot.

        An exception in an init handler renders the nearest ``_500``
        with ``meta.error`` filled in.
        """
        assert self._renderer is not None
        session = _current_session()
        ctx = build_page_context(
            request,
            page,
            params,
            session,
            renderer=self._renderer,
            dev=self.config.dev,
            nocache=self._nocache,
        )
        try:
            await ctx.next()
        except Exception as exc:
            log_error(exc, request)
            file, line = error_location(exc)
            ctx.server_error(type(exc).__name__, str(exc), file=file, line=line)

        if session is not None:
            save_snapshot(session, ctx.snapshot())

        response = ctx.response
        if response is None:
            logger.error("No response for %s: the init stack never responded", request.path)
            return Response(status=204)
        return response

    async def _render_not_found(self, request: Request) -> Response:
        """The nearest ``_404`` for *request.path*, status 404."""
        assert self._routes is not None
        assert self._renderer is not None
        routes = self._routes
        page = Page(
            template_path="",
            template_text=routes.error_template(404, request.path),
            not_found_text=routes.error_template(404, request.path),
            error_text=routes.error_template(500, request.path),
        )
        ctx = build_page_context(
            request,
            page,
            {},
            _current_session(),
            renderer=self._renderer,
            dev=self.config.dev,
            nocache=self._nocache,
        )
        ctx.not_found()
        assert ctx.response is not None
        return ctx.response

    # -- Actions --

    async def _action_endpoint(self, request: Request) -> Response:
        """``POST /@/<module>?<method>``: run an action against the snapshot.

        A missing module or method is a developer error: it is logged
        and answered with an empty 204.
        """
        assert self._routes is not None
        assert self._renderer is not None
        module_name = request.path_params.get("module", "")
        method = request.query.first_key
        if not method:
            logger.error("Action %s called without a method", request.path)
            return Response(status=204)

        module = self._routes.actions(module_name)
        if module is None:
            logger.error("No actions module %r for %s", module_name, request.path)
            return Response(status=204)
        handler = None if method.startswith("_") else module.get(method)
        if handler is None:
            logger.error("No action %r in %s", method, module.path)
            return Response(status=204)

        body = parse_action_body(await request.body())
        session = _current_session()
        ctx = build_action_context(
            request,
            body,
            session,
            module=module_name,
            method=method,
            renderer=self._renderer,
        )
        try:
            await invoke(handler, ctx, ctx.data)
        finally:
            if session is not None:
                save_snapshot(session, ctx.snapshot())

        response = ctx.response
        if response is None:
            logger.error("Action %s.%s never responded", module_name, method)
            return Response(status=204)
        return response

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
        """Compile the app into its frozen runtime state.

        MUST only be called while holding _freeze_lock.
        """
        config = self.config
        t0 = time.perf_counter()

        # 1. Route table: live in dev, built once otherwise
        if config.dev:
            routes: RouteTable = LiveRouteTable(config.pages_path, config.actions_path, config.template_ext)
        else:
            routes = CachedRouteTable(config.pages_path, config.actions_path, config.template_ext).build()
        self._routes = routes

        # 2. Router
        router = Router()
        router.add(Route(f"{ACTION_PREFIX}{{module:path}}", self._action_endpoint, _POST, name="action"))
        if isinstance(routes, CachedRouteTable):
            for entry in routes.endpoints():
                router.add(Route(entry.route_path, partial(self._cached_endpoint, entry), _GET, name=entry.endpoint))
        else:
            router.add(Route(RELOAD_PATH, self._reload_endpoint, _GET, name="reload"))
            router.add(Route("/", self._page_endpoint, _GET, name="page"))
        router.add(Route("/{path:path}", self._page_endpoint, _GET, name="pages"))
        router.compile()
        self._router = router

        # 3. Templates
        if self._custom_kida_env is not None:
            env = self._custom_kida_env
            if self._template_filters:
                env.update_filters(self._template_filters)
            for name, value in self._template_globals.items():
                env.add_global(name, value)
        else:
            env = create_environment(config, self._template_filters, self._template_globals)
        self._renderer = Renderer(env, self._stylesheet)

        # 4. Sessions wrap everything else
        self._sessions = SessionMiddleware(self._session_config(), self._create_session_store())
        self._middleware = (self._sessions, *self._middleware_list)

        self._nocache = int(time.time() * 1000)
        self._frozen = True
        logger.info(
            "Ready in %.1fms (%s mode)",
            (time.perf_counter() - t0) * 1000,
            "dev" if config.dev else "cached",
        )

    def _session_config(self) -> SessionConfig:
        config = self.config
        secret_key = config.secret_key
        if not secret_key:
            if not config.dev:
                msg = "AppConfig.secret_key is required outside dev mode."
                raise ConfigurationError(msg)
            secret_key = secrets.token_urlsafe(32)
            logger.warning("No secret_key set; sessions use a random key and reset on restart")
        return SessionConfig(
            secret_key=secret_key,
            cookie_name=config.session_cookie,
            max_age=config.session_max_age,
        )

    def _create_session_store(self) -> SessionStore:
        if self._session_store is not None:
            return self._session_store
        backend = self.config.session_backend
        if backend == "memory":
            store: SessionStore = MemorySessionStore()
        elif backend == "redis":
            store = RedisSessionStore(self.config.redis_url)
        else:
            msg = f"Unknown session backend {backend!r}. Use 'memory' or 'redis'."
            raise ConfigurationError(msg)
        self._session_store = store
        return store

    def _check_not_frozen(self) -> None:
        if self._frozen:
            msg = (
                "Cannot modify the app after it has started serving requests. "
                "Register middleware, filters and hooks before calling app.run()."
            )
            raise RuntimeError(msg)
