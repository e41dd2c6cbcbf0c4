"""Tests for zen.pages.init_stack: z-init directives and the chain cursor."""

import logging
from types import MappingProxyType

from zen.pages.init_stack import InitChain, build_init_stack, default_render, handler_name
from zen.pages.types import ActionsModule


def _module(name: str, **handlers) -> ActionsModule:
    return ActionsModule(name=name, path=f"actions/{name}.py", handlers=MappingProxyType(handlers))


def _lookup(*modules: ActionsModule):
    table = {m.name: m for m in modules}
    return table.get


def load_books(ctx, data) -> None:
    data["books"] = ["Dune"]


def load_sidebar(ctx, data) -> None:
    data["sidebar"] = True


class TestHandlerName:
    def test_module_only(self) -> None:
        assert handler_name("books") == ("books", "_")

    def test_custom_handler(self) -> None:
        assert handler_name("books.sidebar") == ("books", "_sidebar")

    def test_nested_module(self) -> None:
        assert handler_name("admin/users.list") == ("admin/users", "_list")


class TestBuildInitStack:
    def test_no_directives_renders(self) -> None:
        assert build_init_stack("<main><h1>Hi</h1></main>", _lookup()) == (default_render,)

    def test_document_order(self) -> None:
        books = _module("books", _=load_books, _sidebar=load_sidebar)
        text = '<div z-init="books"></div><aside z-init="books.sidebar"></aside>'
        assert build_init_stack(text, _lookup(books)) == (load_books, load_sidebar)

    def test_missing_module_logs_and_renders(self, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="zen.pages"):
            stack = build_init_stack('<div z-init="nope"></div>', _lookup())
        assert stack == (default_render,)
        assert "not found" in caplog.text

    def test_missing_handler_logs_and_renders(self, caplog) -> None:
        books = _module("books", _=load_books)
        with caplog.at_level(logging.ERROR, logger="zen.pages"):
            stack = build_init_stack('<div z-init="books.other"></div>', _lookup(books))
        assert stack == (default_render,)
        assert "_other" in caplog.text

    def test_empty_directive(self, caplog) -> None:
        with caplog.at_level(logging.ERROR, logger="zen.pages"):
            stack = build_init_stack('<div z-init=""></div>', _lookup())
        assert stack == (default_render,)


class _RecordingContext:
    def __init__(self) -> None:
        self.data: dict = {}
        self.errors: list[tuple[str, str]] = []

    def server_error(self, name: str = "", message: str = "", **details) -> None:
        self.errors.append((name, message))


class TestInitChain:
    async def test_advance_runs_in_order(self) -> None:
        calls: list[str] = []

        def first(ctx, data) -> None:
            calls.append("first")

        async def second(ctx, data) -> None:
            calls.append("second")

        chain = InitChain((first, second))
        ctx = _RecordingContext()
        await chain.advance(ctx)
        await chain.advance(ctx)
        assert calls == ["first", "second"]
        assert chain.exhausted
        assert chain.position == 2

    async def test_handler_receives_data_bag(self) -> None:
        chain = InitChain((load_books,))
        ctx = _RecordingContext()
        await chain.advance(ctx)
        assert ctx.data == {"books": ["Dune"]}

    async def test_advance_past_end_is_server_error(self) -> None:
        chain = InitChain((load_books,))
        ctx = _RecordingContext()
        await chain.advance(ctx)
        await chain.advance(ctx)
        assert ctx.errors == [("ctx.next() failed", "No next init function in stack.")]

    def test_empty_chain_is_exhausted(self) -> None:
        assert InitChain(()).exhausted
