"""Tests for zen.pages.resolve: URL path to template file."""

from pathlib import Path

from zen.pages.resolve import TemplateResolver, is_hidden


def _resolver(site, files: dict[str, str]) -> TemplateResolver:
    root = site(files)
    return TemplateResolver(root / "pages")


def _rel(resolver: TemplateResolver, found: tuple[Path, dict[str, str]] | None) -> tuple[str, dict[str, str]] | None:
    if found is None:
        return None
    path, params = found
    return path.relative_to(resolver.root).as_posix(), params


class TestLiteralResolution:
    def test_exact_file(self, site) -> None:
        resolver = _resolver(site, {"pages/about.html": "about"})
        assert _rel(resolver, resolver.resolve("/about")) == ("about.html", {})

    def test_nested_file(self, site) -> None:
        resolver = _resolver(site, {"pages/docs/intro.html": "intro"})
        assert _rel(resolver, resolver.resolve("/docs/intro")) == ("docs/intro.html", {})

    def test_trailing_slash_ignored(self, site) -> None:
        resolver = _resolver(site, {"pages/about.html": "about"})
        assert _rel(resolver, resolver.resolve("/about/")) == ("about.html", {})

    def test_miss_is_none(self, site) -> None:
        resolver = _resolver(site, {"pages/about.html": "about"})
        assert resolver.resolve("/contact") is None


class TestIndexResolution:
    def test_root_index(self, site) -> None:
        resolver = _resolver(site, {"pages/index.html": "home"})
        assert _rel(resolver, resolver.resolve("/")) == ("index.html", {})

    def test_directory_index(self, site) -> None:
        resolver = _resolver(site, {"pages/docs/index.html": "docs"})
        assert _rel(resolver, resolver.resolve("/docs")) == ("docs/index.html", {})

    def test_file_beats_directory_index(self, site) -> None:
        resolver = _resolver(
            site,
            {"pages/docs.html": "file", "pages/docs/index.html": "index"},
        )
        assert _rel(resolver, resolver.resolve("/docs")) == ("docs.html", {})

    def test_no_root_index(self, site) -> None:
        resolver = _resolver(site, {"pages/about.html": "about"})
        assert resolver.resolve("/") is None


class TestPlaceholderResolution:
    def test_placeholder_file(self, site) -> None:
        resolver = _resolver(site, {"pages/books/+id.html": "book"})
        assert _rel(resolver, resolver.resolve("/books/42")) == ("books/+id.html", {"id": "42"})

    def test_placeholder_directory(self, site) -> None:
        resolver = _resolver(site, {"pages/books/+id/edit.html": "edit"})
        assert _rel(resolver, resolver.resolve("/books/42/edit")) == (
            "books/+id/edit.html",
            {"id": "42"},
        )

    def test_placeholder_directory_index(self, site) -> None:
        resolver = _resolver(site, {"pages/books/+id/index.html": "book"})
        assert _rel(resolver, resolver.resolve("/books/7")) == ("books/+id/index.html", {"id": "7"})

    def test_exact_beats_placeholder(self, site) -> None:
        resolver = _resolver(
            site,
            {"pages/books/new.html": "new", "pages/books/+id.html": "book"},
        )
        assert _rel(resolver, resolver.resolve("/books/new")) == ("books/new.html", {})
        assert _rel(resolver, resolver.resolve("/books/9")) == ("books/+id.html", {"id": "9"})

    def test_two_placeholders(self, site) -> None:
        resolver = _resolver(site, {"pages/+user/posts/+post.html": "post"})
        assert _rel(resolver, resolver.resolve("/ada/posts/3")) == (
            "+user/posts/+post.html",
            {"user": "ada", "post": "3"},
        )

    def test_placeholder_needs_remaining_path(self, site) -> None:
        resolver = _resolver(site, {"pages/books/+id.html": "book"})
        assert resolver.resolve("/books/42/reviews") is None


class TestUnsafePaths:
    def test_parent_segments_rejected(self, site) -> None:
        resolver = _resolver(site, {"pages/index.html": "home", "secret.html": "nope"})
        assert resolver.resolve("/../secret") is None

    def test_hidden_segments(self) -> None:
        assert is_hidden("/_404")
        assert is_hidden("/docs/_partials/nav")
        assert not is_hidden("/docs/intro")
        assert not is_hidden("/")
