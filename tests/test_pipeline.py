"""Tests for the render pipeline: locals, modifiers, styles."""

from dataclasses import dataclass, field
from typing import Any

from zen.middleware.sessions import Session
from zen.pages.meta import RequestMeta
from zen.templating.dom import get_element_by_id
from zen.templating.locals import template_context
from zen.templating.modifiers import ElementModification, Operation


@dataclass
class _Target:
    data: dict[str, Any] = field(default_factory=dict)
    meta: RequestMeta = field(default_factory=RequestMeta)
    modifications: dict[str, list[ElementModification]] = field(default_factory=dict)


class TestTemplateContext:
    def test_data_is_top_level(self) -> None:
        assert template_context({"title": "x"}, {"pathname": "/"}) == {
            "title": "x",
            "meta": {"pathname": "/"},
        }


class TestLocals:
    def test_meta_fields(self, renderer) -> None:
        target = _Target(meta=RequestMeta(pathname="/books", method="GET"))
        doc = renderer.render_document("<p id='m'>{{ meta.pathname }} {{ meta.method }}</p>", target, None)
        assert get_element_by_id(doc, "m").get_text() == "/books GET"

    def test_session_public_values(self, renderer) -> None:
        session = Session("s1", {"user": "ada", "_state_": {"secret": True}})
        target = _Target()
        doc = renderer.render_document("<p id='u'>{{ meta.session.user }}</p>", target, session)
        assert get_element_by_id(doc, "u").get_text() == "ada"
        assert target.meta.session == {"user": "ada"}

    def test_session_read_at_render_time(self, renderer) -> None:
        session = Session("s1")
        target = _Target()
        session.set("count", 2)
        doc = renderer.render_document("<p id='c'>{{ meta.session.count }}</p>", target, session)
        assert get_element_by_id(doc, "c").get_text() == "2"

    def test_data_escaped(self, renderer) -> None:
        target = _Target(data={"name": "<b>x</b>"})
        doc = renderer.render_document("<p id='n'>{{ name }}</p>", target, None)
        assert get_element_by_id(doc, "n").get_text() == "<b>x</b>"
        assert get_element_by_id(doc, "n").find("b") is None


class TestFullPass:
    def test_modifiers_then_styles(self, renderer) -> None:
        source = (
            '<style id="__twind"></style>'
            '<a id="nav" href="/books" z-active="@">Books</a>'
            '<div id="panel" class="p-4"></div>'
        )
        target = _Target(
            meta=RequestMeta(pathname="/books/1"),
            modifications={"panel": [ElementModification(Operation.ADD_CLASS, ("hidden",))]},
        )
        doc = renderer.render_document(source, target, None)
        assert get_element_by_id(doc, "nav").get("class") == ["active"]
        assert get_element_by_id(doc, "panel").get("class") == ["p-4", "hidden"]
        assert get_element_by_id(doc, "__twind").string == ".p-4{padding:1rem}.hidden{display:none}"

    def test_compiled_source_reused(self, renderer) -> None:
        source = "<p>{{ title }}</p>"
        renderer.render_document(source, _Target(data={"title": "a"}), None)
        doc = renderer.render_document(source, _Target(data={"title": "b"}), None)
        assert str(doc) == "<p>b</p>"
        assert len(renderer.templates) == 1
