"""Data models for file-system page routing.

Frozen dataclasses built by the route tables: in cached mode once at
startup, in live mode per request.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from zen._internal.types import Handler


@dataclass(frozen=True, slots=True)
class Page:
    """A resolved page template.

    Attributes:
        template_path: Absolute path of the template file.
        template_text: Raw template source.
        not_found_text: Nearest ``_404`` template source.
        error_text: Nearest ``_500`` template source.
        init_stack: Handlers run in order before first render.
    """

    template_path: str
    template_text: str
    not_found_text: str
    error_text: str
    init_stack: tuple[Handler, ...] = ()

    def error_template(self, status: int) -> str:
        return self.not_found_text if status == 404 else self.error_text

    def to_snapshot(self) -> dict[str, str]:
        """JSON-safe form stored in the session.

        The init stack is dropped: actions never run init handlers.
        """
        return {
            "template_path": self.template_path,
            "template_text": self.template_text,
            "not_found_text": self.not_found_text,
            "error_text": self.error_text,
        }

    @classmethod
    def from_snapshot(cls, data: Mapping[str, Any]) -> Page:
        from zen.pages.nearest import DEFAULT_ERROR_TEMPLATES

        return cls(
            template_path=str(data.get("template_path", "")),
            template_text=str(data.get("template_text", "")),
            not_found_text=str(data.get("not_found_text", DEFAULT_ERROR_TEMPLATES[404])),
            error_text=str(data.get("error_text", DEFAULT_ERROR_TEMPLATES[500])),
        )


@dataclass(frozen=True, slots=True)
class ActionsModule:
    """Handlers exported by one file under the actions directory.

    ``handlers`` maps method names to callables. ``_`` and ``_<name>``
    are init handlers referenced from ``z-init`` directives; every other
    name is an action method reachable as ``POST /@/<name>?<method>``.
    """

    name: str
    path: str
    handlers: Mapping[str, Handler] = field(default_factory=lambda: MappingProxyType({}))

    def get(self, method: str) -> Handler | None:
        return self.handlers.get(method)

    def __contains__(self, method: object) -> bool:
        return method in self.handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self.handlers)


@dataclass(frozen=True, slots=True)
class ResolvedPage:
    """A page plus the params captured from the URL."""

    page: Page
    params: dict[str, str]


# Looks up an actions module by name ("books", "admin/users")
type ActionsLookup = Callable[[str], ActionsModule | None]


def relative_name(path: Path, root: Path, suffix: str) -> str:
    """``root/admin/users.py`` -> ``"admin/users"`` (POSIX separators)."""
    rel = path.relative_to(root).as_posix()
    return rel[: -len(suffix)] if suffix and rel.endswith(suffix) else rel
