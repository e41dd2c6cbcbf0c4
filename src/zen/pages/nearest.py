"""Nearest-ancestor lookup for error templates.

A ``_404.html`` or ``_500.html`` applies to its directory and everything
beneath it, so a section can override the global error page::

    pages/
        _404.html           <- used for /about, /contact, ...
        docs/
            _404.html       <- used for /docs/missing, /docs/a/b/c
"""

from pathlib import Path

DEFAULT_ERROR_TEMPLATES: dict[int, str] = {
    404: '<div class="page container fade-in"><h2 class="h2">Not Found</h2></div>',
    500: '<div class="page container fade-in"><h2 class="h2">Internal Server Error</h2></div>',
}


def _clamp(start_dir: Path, root: Path) -> Path:
    """Resolve *start_dir*, falling back to *root* if it lies outside."""
    start = start_dir.resolve()
    return start if start.is_relative_to(root) else root


def find_nearest(start_dir: str | Path, filename: str, root: str | Path) -> str | None:
    """Return the text of the closest *filename* at or above *start_dir*.

    Checks *start_dir* first, then each parent, and stops after checking
    *root* (or the filesystem root, whichever comes first). Returns
    ``None`` when no ancestor holds the file.
    """
    root_path = Path(root).resolve()
    directory = _clamp(Path(start_dir), root_path)
    while True:
        candidate = directory / filename
        if candidate.is_file():
            return candidate.read_text(encoding="utf-8")
        if directory == root_path or directory.parent == directory:
            return None
        directory = directory.parent


def error_filename(status: int, template_ext: str) -> str:
    return f"_{status}{template_ext}"


def nearest_error_template(
    status: int,
    start_dir: str | Path,
    root: str | Path,
    template_ext: str = ".html",
) -> str:
    """Nearest ``_<status>`` template text, or the built-in default."""
    found = find_nearest(start_dir, error_filename(status, template_ext), root)
    if found is not None:
        return found
    return DEFAULT_ERROR_TEMPLATES[status]


def url_start_dir(pathname: str, root: Path) -> Path:
    """Directory whose error templates apply to an unresolved *pathname*.

    The last URL segment names the missing page, so the search starts at
    its parent: ``/docs/missing`` starts in ``pages/docs``.
    """
    parts = [p for p in pathname.split("/") if p]
    return root.joinpath(*parts[:-1]) if parts else root
