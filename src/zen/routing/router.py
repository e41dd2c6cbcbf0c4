"""Compiled router with trie-based path matching.

Static segments win over parameters, parameters over catch-alls. Two
routes may use different parameter names at the same depth
(``/books/{id}`` and ``/books/{slug}/edit``): names are bound per route
at the terminal node, not per edge.
"""

from dataclasses import dataclass, field

from zen.errors import MethodNotAllowed, NotFound
from zen.routing.params import SEGMENT_RE
from zen.routing.route import PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/books"             -> [PathSegment("books")]
        "/books/{id}"        -> [PathSegment("books"), PathSegment("{id}", is_param=True, ...)]
        "/@/{module:path}"   -> [PathSegment("@"), PathSegment(..., param_type="path")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if part.startswith("{") and part.endswith("}"):
            name, _, kind = part[1:-1].partition(":")
            segments.append(
                PathSegment(value=part, is_param=True, param_name=name, param_type=kind or "str")
            )
        else:
            segments.append(PathSegment(value=part))
    return segments


@dataclass(slots=True)
class _Terminal:
    """A route registered at a node, with its positional param names."""

    route: Route
    param_names: tuple[str, ...]


@dataclass(slots=True)
class _CatchAll:
    """Catch-all edge: consumes the rest of the path."""

    param_names: tuple[str, ...]
    by_method: dict[str, Route] = field(default_factory=dict)


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all", "children", "param_child", "terminals")

    def __init__(self) -> None:
        self.children: dict[str, _TrieNode] = {}
        self.param_child: _TrieNode | None = None
        self.catch_all: _CatchAll | None = None
        self.terminals: dict[str, _Terminal] = {}


class Router:
    """Compiled router.

    Usage::

        router = Router()
        router.add(Route("/books/{id}", handler, frozenset({"GET"})))
        router.compile()
        match = router.match("GET", "/books/42")
        match.path_params  # {"id": "42"}
    """

    __slots__ = ("_compiled", "_root", "_routes")

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._compiled = False
        self._routes: list[Route] = []

    def add(self, route: Route) -> None:
        """Add a route. Must be called before ``compile()``."""
        if self._compiled:
            msg = "Cannot add routes after compilation."
            raise RuntimeError(msg)

        node = self._root
        names: list[str] = []
        for seg in parse_path(route.path):
            if seg.is_param and seg.param_type == "path":
                if node.catch_all is None:
                    node.catch_all = _CatchAll(param_names=(*names, seg.param_name or "path"))
                for method in route.methods:
                    node.catch_all.by_method[method] = route
                self._routes.append(route)
                return
            if seg.is_param:
                names.append(seg.param_name or "")
                if node.param_child is None:
                    node.param_child = _TrieNode()
                node = node.param_child
            else:
                node = node.children.setdefault(seg.value, _TrieNode())

        for method in route.methods:
            node.terminals[method] = _Terminal(route, tuple(names))
        self._routes.append(route)

    @property
    def routes(self) -> list[Route]:
        """Every registered route, in registration order."""
        return list(self._routes)

    def compile(self) -> None:
        """Freeze the router. No more routes can be added."""
        self._compiled = True

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request path and method.

        Raises ``NotFound`` if nothing matches the path and
        ``MethodNotAllowed`` if the path matches under other methods.
        """
        parts = [p for p in path.strip("/").split("/") if p]
        found = self._match_node(self._root, parts, 0, ())
        if found is None:
            raise NotFound(f"No route matches {method} {path!r}")

        by_method, values = found
        if method in by_method:
            route, names = by_method[method]
            return RouteMatch(route=route, path_params=dict(zip(names, values, strict=True)))
        raise MethodNotAllowed(frozenset(by_method))

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        values: tuple[str, ...],
    ) -> tuple[dict[str, tuple[Route, tuple[str, ...]]], tuple[str, ...]] | None:
        if index == len(parts):
            if node.terminals:
                return {m: (t.route, t.param_names) for m, t in node.terminals.items()}, values
            return None

        part = parts[index]

        child = node.children.get(part)
        if child is not None:
            found = self._match_node(child, parts, index + 1, values)
            if found is not None:
                return found

        if node.param_child is not None and SEGMENT_RE.fullmatch(part):
            found = self._match_node(node.param_child, parts, index + 1, (*values, part))
            if found is not None:
                return found

        if node.catch_all is not None:
            rest = "/".join(parts[index:])
            edge = node.catch_all
            return {m: (r, edge.param_names) for m, r in edge.by_method.items()}, (*values, rest)

        return None
