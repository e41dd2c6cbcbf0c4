"""Resolve a URL path to a page template on disk.

Resolution order for ``/books/42``:

1. ``pages/books/42.html``
2. ``pages/books/42/index.html``
3. Walk the segments: ``books`` matches exactly, ``42`` has no exact
   match so a ``+name`` entry binds it (``books/+id.html`` gives
   ``{"id": "42"}``).

An exact name always beats a placeholder at the same level. A miss is
``None``, never an exception: the caller renders a 404.
"""

import logging
from pathlib import Path

logger = logging.getLogger("zen.pages")

PARAM_PREFIX = "+"


def is_hidden(pathname: str) -> bool:
    """True if any segment is private (starts with ``_``)."""
    return any(part.startswith("_") for part in pathname.split("/") if part)


class TemplateResolver:
    """Map request paths to template files under a pages directory."""

    __slots__ = ("_ext", "_root")

    def __init__(self, pages_dir: str | Path, template_ext: str = ".html") -> None:
        self._root = Path(pages_dir).resolve()
        self._ext = template_ext

    @property
    def root(self) -> Path:
        return self._root

    def resolve(self, pathname: str) -> tuple[Path, dict[str, str]] | None:
        """Return ``(template path, params)`` or ``None``."""
        parts = [p for p in pathname.split("/") if p]
        if any(p in (".", "..") for p in parts):
            return None

        if parts:
            direct = self._template(self._root.joinpath(*parts))
            if direct is not None:
                return direct, {}

        index = self._index(self._root.joinpath(*parts))
        if index is not None:
            return index, {}

        return self._walk(parts)

    # -- Helpers --

    def _template(self, base: Path) -> Path | None:
        """``base + ext`` if it is a file inside the root."""
        candidate = base.with_name(base.name + self._ext)
        if candidate.is_file() and candidate.resolve().is_relative_to(self._root):
            return candidate
        return None

    def _index(self, directory: Path) -> Path | None:
        candidate = directory / f"index{self._ext}"
        if candidate.is_file() and candidate.resolve().is_relative_to(self._root):
            return candidate
        return None

    def _walk(self, parts: list[str]) -> tuple[Path, dict[str, str]] | None:
        current = self._root
        params: dict[str, str] = {}

        for i, segment in enumerate(parts):
            last = i == len(parts) - 1
            exact = current / segment
            if exact.is_dir() or (last and self._template(exact) is not None):
                current = exact
                continue

            placeholder = self._placeholder(current, prefer_file=last)
            if placeholder is None:
                return None
            params[placeholder[1]] = segment
            current = placeholder[0]

        found = self._template(current) if current != self._root else None
        if found is None:
            found = self._index(current)
        if found is None:
            return None
        return found, params

    def _placeholder(self, directory: Path, *, prefer_file: bool) -> tuple[Path, str] | None:
        """Find a ``+name`` entry in *directory*.

        Returns the entry's path without extension and the param name.
        Directories are preferred while segments remain; a file on the
        last segment.
        """
        if not directory.is_dir():
            return None

        dirs: list[Path] = []
        files: list[Path] = []
        for entry in sorted(directory.iterdir()):
            if not entry.name.startswith(PARAM_PREFIX):
                continue
            if entry.is_dir():
                dirs.append(entry)
            elif entry.is_file() and entry.name.endswith(self._ext):
                files.append(entry.with_name(entry.name[: -len(self._ext)]))

        ordered = [*files, *dirs] if prefer_file else [*dirs, *files]
        if not ordered:
            return None
        if len(ordered) > 1:
            logger.debug("Several placeholders in %s, using %s", directory, ordered[0].name)
        chosen = ordered[0]
        return chosen, chosen.name[len(PARAM_PREFIX) :]
