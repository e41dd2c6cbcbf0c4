"""Route tables: where pages, actions and error templates come from.

Two interchangeable strategies, owned by the ``App``:

``CachedRouteTable``
    Walks ``pages/`` and ``actions/`` once at startup and keeps three
    read-only maps: endpoint -> Page, module name -> ActionsModule and
    directory -> error templates. One router route per endpoint.

``LiveRouteTable``
    Development mode. Pages are resolved from disk on every request so
    template edits show up immediately. Action modules are cached and
    reloaded when their file changes, or when the reload watcher calls
    ``invalidate()``. A generation counter on the table names each
    reload so no stale module object is reused.

Both hide any path with a segment starting ``_``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from zen.errors import ConfigurationError, NotFound
from zen.pages.actions import action_path, load_actions_module
from zen.pages.init_stack import build_init_stack
from zen.pages.nearest import (
    DEFAULT_ERROR_TEMPLATES,
    nearest_error_template,
    url_start_dir,
)
from zen.pages.resolve import PARAM_PREFIX, TemplateResolver, is_hidden
from zen.pages.types import ActionsModule, Page, ResolvedPage, relative_name
from zen.routing.route import Route
from zen.routing.router import Router

logger = logging.getLogger("zen.pages")

ENDPOINT_RE = re.compile(r"^/(?:[A-Za-z0-9\-$_/.:]+/)*[A-Za-z0-9\-$_/.:]*$")

_ERROR_STEMS = {"_404": 404, "_500": 500}


class RouteTable(Protocol):
    """What request handling needs from a route strategy."""

    @property
    def pages_root(self) -> Path: ...

    def resolve_page(self, pathname: str) -> ResolvedPage | None: ...

    def actions(self, name: str) -> ActionsModule | None: ...

    def error_template(self, status: int, pathname: str) -> str: ...


@dataclass(frozen=True, slots=True)
class PageEndpoint:
    """A cached page registered under one URL.

    ``endpoint`` uses ``:name`` slots (``/books/:id``); ``route_path``
    is the router form (``/books/{id}``).
    """

    endpoint: str
    route_path: str
    page: Page


def page_endpoints(rel_path: str) -> list[tuple[str, str]]:
    """Endpoints for a template path relative to the pages root.

    ``books/+id`` gives ``[("/books/:id", "/books/{id}")]``; an index
    template also answers for its directory::

        "docs/index" -> [("/docs/index", ...), ("/docs", ...)]
        "index"      -> [("/index", ...), ("/", "/")]
    """
    segments = rel_path.split("/")
    colon = [f":{s[len(PARAM_PREFIX):]}" if s.startswith(PARAM_PREFIX) else s for s in segments]
    braces = [f"{{{s[len(PARAM_PREFIX):]}}}" if s.startswith(PARAM_PREFIX) else s for s in segments]

    endpoints = [("/" + "/".join(colon), "/" + "/".join(braces))]
    if segments[-1] == "index":
        endpoints.append(("/" + "/".join(colon[:-1]), "/" + "/".join(braces[:-1])))
    return endpoints


class CachedRouteTable:
    """Route table built once from disk and read-only afterwards."""

    __slots__ = ("_actions", "_actions_root", "_errors", "_ext", "_pages", "_root", "_router")

    def __init__(self, pages_dir: str | Path, actions_dir: str | Path, template_ext: str = ".html") -> None:
        self._root = Path(pages_dir).resolve()
        self._actions_root = Path(actions_dir).resolve()
        self._ext = template_ext
        self._actions: dict[str, ActionsModule] = {}
        self._errors: dict[tuple[str, ...], dict[int, str]] = {}
        self._pages: dict[str, PageEndpoint] = {}
        self._router: Router | None = None

    @property
    def pages_root(self) -> Path:
        return self._root

    # -- Build --

    def build(self) -> CachedRouteTable:
        """Walk actions, then error templates, then pages.

        Actions load first because pages resolve their init stacks
        against them.
        """
        if not self._root.is_dir():
            msg = f"Pages directory not found: {self._root}"
            raise ConfigurationError(msg)

        self._load_actions()
        templates = sorted(self._root.rglob(f"*{self._ext}"))
        self._load_errors(templates)
        self._load_pages(templates)

        router = Router()
        for entry in self._pages.values():
            router.add(Route(entry.route_path, lambda: None, frozenset({"GET"}), name=entry.endpoint))
        router.compile()
        self._router = router

        logger.info(
            "Cached %d page endpoints, %d action modules, %d error templates",
            len(self._pages),
            len(self._actions),
            sum(len(v) for v in self._errors.values()),
        )
        return self

    def _load_actions(self) -> None:
        if not self._actions_root.is_dir():
            logger.debug("No actions directory at %s", self._actions_root)
            return
        for path in sorted(self._actions_root.rglob("*.py")):
            rel = path.relative_to(self._actions_root)
            if any(part.startswith(("_", ".")) for part in rel.parts):
                continue
            name = relative_name(path, self._actions_root, ".py")
            self._actions[name] = load_actions_module(path, name)

    def _load_errors(self, templates: list[Path]) -> None:
        for path in templates:
            status = _ERROR_STEMS.get(path.name[: -len(self._ext)])
            if status is None:
                continue
            rel_dir = path.parent.relative_to(self._root).parts
            self._errors.setdefault(rel_dir, {})[status] = path.read_text(encoding="utf-8")

    def _load_pages(self, templates: list[Path]) -> None:
        for path in templates:
            rel = path.relative_to(self._root)
            if any(part.startswith("_") for part in rel.parts):
                continue

            text = path.read_text(encoding="utf-8")
            rel_dir = rel.parent.parts
            page = Page(
                template_path=str(path),
                template_text=text,
                not_found_text=self._nearest_error(404, rel_dir),
                error_text=self._nearest_error(500, rel_dir),
                init_stack=build_init_stack(text, self.actions),
            )

            for endpoint, route_path in page_endpoints(relative_name(path, self._root, self._ext)):
                if not ENDPOINT_RE.match(endpoint):
                    logger.error("Invalid endpoint %r for %s, not routed", endpoint, rel)
                    continue
                if endpoint in self._pages:
                    logger.warning(
                        "Endpoint %r already served by %s, ignoring %s",
                        endpoint,
                        self._pages[endpoint].page.template_path,
                        rel,
                    )
                    continue
                self._pages[endpoint] = PageEndpoint(endpoint, route_path, page)

    def _nearest_error(self, status: int, rel_dir: tuple[str, ...]) -> str:
        for depth in range(len(rel_dir), -1, -1):
            found = self._errors.get(rel_dir[:depth], {}).get(status)
            if found is not None:
                return found
        return DEFAULT_ERROR_TEMPLATES[status]

    # -- Lookup --

    def endpoints(self) -> Iterator[PageEndpoint]:
        return iter(self._pages.values())

    def resolve_page(self, pathname: str) -> ResolvedPage | None:
        if self._router is None or is_hidden(pathname):
            return None
        try:
            match = self._router.match("GET", pathname)
        except NotFound:
            return None
        entry = self._pages[match.route.name or ""]
        return ResolvedPage(entry.page, match.path_params)

    def actions(self, name: str) -> ActionsModule | None:
        return self._actions.get(name)

    def error_template(self, status: int, pathname: str) -> str:
        parts = [p for p in pathname.split("/") if p]
        return self._nearest_error(status, tuple(parts[:-1]))


class LiveRouteTable:
    """Route table that follows the files on disk."""

    __slots__ = ("_actions_root", "_ext", "_generation", "_modules", "_resolver")

    def __init__(self, pages_dir: str | Path, actions_dir: str | Path, template_ext: str = ".html") -> None:
        self._resolver = TemplateResolver(pages_dir, template_ext)
        self._actions_root = Path(actions_dir).resolve()
        self._ext = template_ext
        self._generation = 0
        self._modules: dict[str, tuple[float, ActionsModule]] = {}

    @property
    def pages_root(self) -> Path:
        return self._resolver.root

    @property
    def generation(self) -> int:
        return self._generation

    def invalidate(self) -> None:
        """Drop every loaded actions module (file-change notification)."""
        self._generation += 1
        self._modules.clear()

    def resolve_page(self, pathname: str) -> ResolvedPage | None:
        if is_hidden(pathname):
            return None
        found = self._resolver.resolve(pathname)
        if found is None:
            return None
        path, params = found
        text = path.read_text(encoding="utf-8")
        root = self._resolver.root
        page = Page(
            template_path=str(path),
            template_text=text,
            not_found_text=nearest_error_template(404, path.parent, root, self._ext),
            error_text=nearest_error_template(500, path.parent, root, self._ext),
            init_stack=build_init_stack(text, self.actions),
        )
        return ResolvedPage(page, params)

    def actions(self, name: str) -> ActionsModule | None:
        path = action_path(self._actions_root, name)
        if path is None or not path.is_file():
            return None
        mtime = path.stat().st_mtime
        cached = self._modules.get(name)
        if cached is not None and cached[0] == mtime:
            return cached[1]
        self._generation += 1
        try:
            module = load_actions_module(path, name, generation=self._generation)
        except Exception:
            # Treated as missing; retried on the next lookup
            logger.exception("Failed to import actions module %r from %s", name, path)
            self._modules.pop(name, None)
            return None
        self._modules[name] = (mtime, module)
        return module

    def error_template(self, status: int, pathname: str) -> str:
        root = self._resolver.root
        return nearest_error_template(status, url_start_dir(pathname, root), root, self._ext)
