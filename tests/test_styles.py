"""Tests for zen.templating.styles: the __twind style pass."""

import sys
from concurrent.futures import ThreadPoolExecutor

from zen.templating.dom import get_element_by_id, parse_html
from zen.templating.styles import (
    STYLE_ELEMENT_ID,
    UtilityStyleSheet,
    apply_styles,
    css_escape,
    document_classes,
)


class TestDocumentClasses:
    def test_first_seen_order(self) -> None:
        doc = parse_html('<div class="flex p-4"><span class="p-4 font-bold"></span></div>')
        assert document_classes(doc) == ["flex", "p-4", "font-bold"]

    def test_no_classes(self) -> None:
        assert document_classes(parse_html("<p>plain</p>")) == []


class TestCssEscape:
    def test_plain(self) -> None:
        assert css_escape("p-4") == "p-4"

    def test_special_characters(self) -> None:
        assert css_escape("md:flex") == "md\\:flex"
        assert css_escape("w-1/2") == "w-1\\/2"


class TestUtilityStyleSheet:
    def test_known_classes_only(self) -> None:
        sheet = UtilityStyleSheet({"hidden": "display:none"})
        doc = parse_html('<p class="hidden custom"></p>')
        assert sheet.generate(doc) == ".hidden{display:none}"

    def test_each_rule_once_per_call(self) -> None:
        sheet = UtilityStyleSheet({"flex": "display:flex"})
        assert sheet.rules_for(["flex", "flex"]) == [".flex{display:flex}"]
        assert sheet.rules_for(["flex"]) == [".flex{display:flex}"]

    def test_default_rules(self) -> None:
        sheet = UtilityStyleSheet()
        assert sheet.rules_for(["hidden"]) == [".hidden{display:none}"]


class TestApplyStyles:
    def test_fills_placeholder(self) -> None:
        doc = parse_html(f'<head><style id="{STYLE_ELEMENT_ID}"></style></head><p class="hidden"></p>')
        apply_styles(doc, UtilityStyleSheet({"hidden": "display:none"}))
        style = get_element_by_id(doc, STYLE_ELEMENT_ID)
        assert style is not None
        assert style.name == "style"
        assert style.string == ".hidden{display:none}"

    def test_regenerates_from_scratch(self) -> None:
        sheet = UtilityStyleSheet({"hidden": "display:none"})
        markup = f'<style id="{STYLE_ELEMENT_ID}"></style><p class="hidden"></p>'
        apply_styles(parse_html(markup), sheet)
        doc = parse_html(markup)
        apply_styles(doc, sheet)
        style = get_element_by_id(doc, STYLE_ELEMENT_ID)
        assert style is not None
        assert style.string == ".hidden{display:none}"

    def test_no_placeholder_no_change(self) -> None:
        doc = parse_html('<p class="hidden"></p>')
        apply_styles(doc, UtilityStyleSheet())
        assert str(doc) == '<p class="hidden"></p>'

    def test_shared_sheet_across_threads(self) -> None:
        sheet = UtilityStyleSheet()
        markup = (
            f'<style id="{STYLE_ELEMENT_ID}"></style>'
            '<div class="flex hidden"><span class="block p-4"></span></div>'
        )
        expected = sheet.generate(parse_html(markup))
        assert expected

        def render_many() -> list[str]:
            rendered = []
            for _ in range(200):
                doc = apply_styles(parse_html(markup), sheet)
                style = get_element_by_id(doc, STYLE_ELEMENT_ID)
                assert style is not None
                rendered.append(style.string or "")
            return rendered

        original = sys.getswitchinterval()
        sys.setswitchinterval(1e-6)
        try:
            with ThreadPoolExecutor(max_workers=4) as pool:
                results = [f.result() for f in [pool.submit(render_many) for _ in range(4)]]
        finally:
            sys.setswitchinterval(original)

        bad = [css for batch in results for css in batch if css != expected]
        assert bad == []
