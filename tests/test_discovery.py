"""Tests for zen.pages.discovery: cached and live route tables."""

import logging
import os

import pytest

from zen.errors import ConfigurationError
from zen.pages.actions import action_path, module_identifier
from zen.pages.discovery import CachedRouteTable, LiveRouteTable, page_endpoints
from zen.pages.init_stack import default_render
from zen.pages.nearest import DEFAULT_ERROR_TEMPLATES

BOOKS_ACTIONS = """
def _(ctx, data):
    data["books"] = ["Dune"]
    ctx.render()


def _sidebar(ctx, data):
    ctx.render()


def add(ctx, data):
    data["books"].append(ctx.payload)
    ctx.render("#list")
"""

SITE = {
    "pages/index.html": "<h1>Home</h1>",
    "pages/about.html": "<h1>About</h1>",
    "pages/books/index.html": '<section z-init="books"><ul id="list"></ul></section>',
    "pages/books/+id.html": '<section z-init="books.sidebar">{{ meta.params.id }}</section>',
    "pages/_404.html": "<h1>root 404</h1>",
    "pages/books/_404.html": "<h1>books 404</h1>",
    "pages/books/_500.html": "<h1>books 500</h1>",
    "pages/_partials/nav.html": "<nav></nav>",
    "actions/books.py": BOOKS_ACTIONS,
    "actions/_helpers.py": "def shared(ctx, data):\n    pass\n",
}


def _cached(site) -> CachedRouteTable:
    root = site(SITE)
    return CachedRouteTable(root / "pages", root / "actions").build()


def _live(site) -> LiveRouteTable:
    root = site(SITE)
    return LiveRouteTable(root / "pages", root / "actions")


class TestPageEndpoints:
    def test_plain(self) -> None:
        assert page_endpoints("about") == [("/about", "/about")]

    def test_placeholder(self) -> None:
        assert page_endpoints("books/+id") == [("/books/:id", "/books/{id}")]

    def test_index_answers_for_directory(self) -> None:
        assert page_endpoints("docs/index") == [("/docs/index", "/docs/index"), ("/docs", "/docs")]

    def test_root_index(self) -> None:
        assert page_endpoints("index") == [("/index", "/index"), ("/", "/")]


class TestActionNames:
    def test_identifier(self) -> None:
        assert module_identifier("admin/users") == "zen_actions.admin.users"
        assert module_identifier("my-books", generation=3) == "zen_actions.my_books__3"

    def test_path(self, tmp_path) -> None:
        assert action_path(tmp_path, "admin/users") == tmp_path / "admin" / "users.py"

    @pytest.mark.parametrize("name", ["", "_private", "../etc", "a/../../b", ".hidden"])
    def test_unroutable(self, tmp_path, name: str) -> None:
        assert action_path(tmp_path, name) is None


class TestCachedRouteTable:
    def test_missing_pages_dir(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Pages directory not found"):
            CachedRouteTable(tmp_path / "nope", tmp_path / "actions").build()

    def test_endpoints(self, site) -> None:
        table = _cached(site)
        endpoints = {entry.endpoint for entry in table.endpoints()}
        assert endpoints == {"/", "/index", "/about", "/books", "/books/index", "/books/:id"}

    def test_resolve_literal_and_placeholder(self, site) -> None:
        table = _cached(site)
        about = table.resolve_page("/about")
        assert about is not None
        assert about.page.template_text == "<h1>About</h1>"

        book = table.resolve_page("/books/42")
        assert book is not None
        assert book.params == {"id": "42"}
        assert book.page.not_found_text == "<h1>books 404</h1>"

    def test_root_and_index(self, site) -> None:
        table = _cached(site)
        assert table.resolve_page("/").page.template_text == "<h1>Home</h1>"
        assert table.resolve_page("/books").page is table.resolve_page("/books/index").page

    def test_hidden_and_unknown(self, site) -> None:
        table = _cached(site)
        assert table.resolve_page("/_404") is None
        assert table.resolve_page("/_partials/nav") is None
        assert table.resolve_page("/missing") is None

    def test_actions_loaded(self, site) -> None:
        table = _cached(site)
        books = table.actions("books")
        assert books is not None
        assert set(books) == {"_", "_sidebar", "add"}
        assert table.actions("_helpers") is None
        assert table.actions("nope") is None

    def test_init_stack_from_directives(self, site) -> None:
        table = _cached(site)
        books = table.actions("books")
        assert table.resolve_page("/books").page.init_stack == (books.get("_"),)
        assert table.resolve_page("/books/1").page.init_stack == (books.get("_sidebar"),)
        assert table.resolve_page("/about").page.init_stack == (default_render,)

    def test_error_templates(self, site) -> None:
        table = _cached(site)
        assert table.error_template(404, "/books/missing") == "<h1>books 404</h1>"
        assert table.error_template(404, "/missing") == "<h1>root 404</h1>"
        assert table.error_template(500, "/books/x") == "<h1>books 500</h1>"
        assert table.error_template(500, "/x") == DEFAULT_ERROR_TEMPLATES[500]

    def test_invalid_endpoint_not_routed(self, tmp_path, caplog) -> None:
        pages = tmp_path / "pages"
        pages.mkdir()
        (pages / "bad name.html").write_text("<p>bad</p>")
        (pages / "ok.html").write_text("<p>ok</p>")
        with caplog.at_level(logging.ERROR, logger="zen.pages"):
            table = CachedRouteTable(pages, tmp_path / "actions").build()
        assert {entry.endpoint for entry in table.endpoints()} == {"/ok"}
        assert table.resolve_page("/bad name") is None
        assert "Invalid endpoint '/bad name'" in caplog.text

    def test_no_actions_dir(self, tmp_path) -> None:
        (tmp_path / "pages").mkdir()
        (tmp_path / "pages" / "index.html").write_text("<p>hi</p>")
        table = CachedRouteTable(tmp_path / "pages", tmp_path / "actions").build()
        assert table.actions("books") is None
        assert table.resolve_page("/") is not None


class TestLiveRouteTable:
    def test_resolve(self, site) -> None:
        table = _live(site)
        book = table.resolve_page("/books/7")
        assert book is not None
        assert book.params == {"id": "7"}
        assert book.page.error_text == "<h1>books 500</h1>"
        assert table.resolve_page("/_404") is None

    def test_template_edits_visible(self, site) -> None:
        table = _live(site)
        assert table.resolve_page("/about").page.template_text == "<h1>About</h1>"
        (table.pages_root / "about.html").write_text("<h1>Changed</h1>")
        assert table.resolve_page("/about").page.template_text == "<h1>Changed</h1>"

    def test_actions_cached_by_mtime(self, site) -> None:
        table = _live(site)
        first = table.actions("books")
        assert first is not None
        assert table.actions("books") is first
        assert table.generation == 1

    def test_changed_actions_reloaded(self, site) -> None:
        table = _live(site)
        first = table.actions("books")
        path = first.path
        with open(path, "a", encoding="utf-8") as fh:
            fh.write("\n\ndef remove(ctx, data):\n    ctx.ignore()\n")
        stat = os.stat(path)
        os.utime(path, (stat.st_atime, stat.st_mtime + 5))

        second = table.actions("books")
        assert second is not first
        assert "remove" in second
        assert table.generation == 2

    def test_invalidate(self, site) -> None:
        table = _live(site)
        first = table.actions("books")
        table.invalidate()
        assert table.generation == 2
        assert table.actions("books") is not first
        assert table.generation == 3

    def test_missing_module(self, site) -> None:
        table = _live(site)
        assert table.actions("nope") is None
        assert table.actions("_helpers") is None

    def test_error_template(self, site) -> None:
        table = _live(site)
        assert table.error_template(404, "/books/missing/deeper") == "<h1>books 404</h1>"
        assert table.error_template(404, "/missing") == "<h1>root 404</h1>"
        assert table.error_template(404, "/books/missing") == "<h1>books 404</h1>"

    def test_broken_module_is_missing(self, site, caplog) -> None:
        root = site({**SITE, "actions/books.py": "def _(ctx, data)\n    ctx.render()\n"})
        table = LiveRouteTable(root / "pages", root / "actions")
        with caplog.at_level(logging.ERROR, logger="zen.pages"):
            assert table.actions("books") is None
            page = table.resolve_page("/books")
        assert page is not None
        assert page.page.init_stack == (default_render,)
        assert "Failed to import actions module 'books'" in caplog.text
        assert "SyntaxError" in caplog.text

    def test_broken_module_retried_after_fix(self, site) -> None:
        root = site({**SITE, "actions/books.py": "def _(ctx, data)\n"})
        table = LiveRouteTable(root / "pages", root / "actions")
        assert table.actions("books") is None
        (root / "actions" / "books.py").write_text(BOOKS_ACTIONS)
        assert "add" in table.actions("books")
