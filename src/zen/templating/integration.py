"""Kida environment setup.

One Environment per app, created in ``App._freeze()``. Templates load
from the pages directory, so page sources can ``{% extends %}`` or
``{% include %}`` shared partials (``_layout.html``, ``_nav.html``).
Page sources themselves are compiled from their text: the route table
already holds it, and error templates may be built-in defaults that
live on no disk.
"""

from collections.abc import Callable, Mapping
from typing import Any

from kida import Environment, FileSystemLoader
from kida.utils.lru_cache import LRUCache

from zen.config import AppConfig
from zen.templating.filters import BUILTIN_FILTERS


def create_environment(
    config: AppConfig,
    filters: Mapping[str, Callable[..., Any]] | None = None,
    globals_: Mapping[str, Any] | None = None,
) -> Environment:
    """Create a kida Environment rooted at ``config.pages_path``.

    User *filters* may override the built-ins.
    """
    env = Environment(
        loader=FileSystemLoader(str(config.pages_path)),
        autoescape=True,
        auto_reload=config.dev,
    )
    env.update_filters(BUILTIN_FILTERS)
    if filters:
        env.update_filters(dict(filters))
    for name, value in (globals_ or {}).items():
        env.add_global(name, value)
    return env


class TemplateCache:
    """Compiled page sources, keyed by their text.

    Keying by text keeps live mode correct without invalidation: an
    edited template is simply a new key. Backed by kida's own
    ``LRUCache``, which is safe to share between worker threads; the
    least recently used entries are evicted past *maxsize*.
    """

    __slots__ = ("_compiled", "_env")

    def __init__(self, env: Environment, maxsize: int = 256) -> None:
        self._env = env
        self._compiled: LRUCache[str, Any] = LRUCache(maxsize=maxsize)

    @property
    def env(self) -> Environment:
        return self._env

    def get(self, source: str) -> Any:
        return self._compiled.get_or_set(source, lambda: self._env.from_string(source))

    def render(self, source: str, context: Mapping[str, Any]) -> str:
        return self.get(source).render(dict(context))

    def __len__(self) -> int:
        return len(self._compiled)
