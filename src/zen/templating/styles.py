"""Style pass: CSS for the utility classes a document uses.

A page opts in by reserving a placeholder::

    <head>
        <style id="__twind"></style>
    </head>

After every render the placeholder is replaced with the rules for the
classes present in the output. Partial renders append the regenerated
``#__twind`` element when an action edited classes, so the client can
swap in styles for classes the page did not have before.

Stylesheets are pluggable: anything with ``reset()`` and
``generate(document)`` works. ``UtilityStyleSheet`` is a plain table
of ``class -> declarations``.
"""

import re
import threading
from collections.abc import Iterable, Mapping
from typing import Protocol

from zen.templating.dom import Document, get_classes, get_element_by_id

STYLE_ELEMENT_ID = "__twind"

_CSS_SPECIAL = re.compile(r"([^A-Za-z0-9_-])")

_generate_lock = threading.Lock()


class StyleSheet(Protocol):
    """Generates CSS for a rendered document."""

    def reset(self) -> None: ...

    def generate(self, document: Document) -> str: ...


DEFAULT_RULES: dict[str, str] = {
    "hidden": "display:none",
    "block": "display:block",
    "inline": "display:inline",
    "inline-block": "display:inline-block",
    "flex": "display:flex",
    "grid": "display:grid",
    "flex-col": "flex-direction:column",
    "items-center": "align-items:center",
    "justify-between": "justify-content:space-between",
    "gap-2": "gap:0.5rem",
    "gap-4": "gap:1rem",
    "p-2": "padding:0.5rem",
    "p-4": "padding:1rem",
    "m-0": "margin:0",
    "mt-4": "margin-top:1rem",
    "mb-4": "margin-bottom:1rem",
    "w-full": "width:100%",
    "text-center": "text-align:center",
    "text-sm": "font-size:0.875rem",
    "text-lg": "font-size:1.125rem",
    "font-bold": "font-weight:700",
    "italic": "font-style:italic",
    "underline": "text-decoration-line:underline",
    "line-through": "text-decoration-line:line-through",
    "opacity-50": "opacity:0.5",
    "cursor-pointer": "cursor:pointer",
    "rounded": "border-radius:0.25rem",
    "border": "border-width:1px",
}


def css_escape(class_name: str) -> str:
    """Escape a class name for use in a selector (``md:flex`` -> ``md\\:flex``)."""
    return _CSS_SPECIAL.sub(r"\\\1", class_name)


def document_classes(document: Document) -> list[str]:
    """Every class used in *document*, first-seen order, no duplicates."""
    seen: dict[str, None] = {}
    for element in document.find_all(class_=True):
        for name in get_classes(element):
            seen.setdefault(name, None)
    return list(seen)


class UtilityStyleSheet:
    """Rule-table stylesheet.

    Emits one rule per known class in use. Unknown classes are left to
    the page's own CSS. Holds no per-render state, so one instance
    serves every worker thread.
    """

    __slots__ = ("_rules",)

    def __init__(self, rules: Mapping[str, str] | None = None) -> None:
        self._rules = dict(DEFAULT_RULES if rules is None else rules)

    def reset(self) -> None:
        pass

    def rules_for(self, classes: Iterable[str]) -> list[str]:
        emitted: set[str] = set()
        rules: list[str] = []
        for name in classes:
            declarations = self._rules.get(name)
            if declarations is None or name in emitted:
                continue
            emitted.add(name)
            rules.append(f".{css_escape(name)}{{{declarations}}}")
        return rules

    def generate(self, document: Document) -> str:
        return "".join(self.rules_for(document_classes(document)))


def apply_styles(document: Document, stylesheet: StyleSheet) -> Document:
    """Fill the ``#__twind`` placeholder. No placeholder, no work."""
    placeholder = get_element_by_id(document, STYLE_ELEMENT_ID)
    if placeholder is None:
        return document
    # reset() and generate() are one unit for stylesheets that keep state
    with _generate_lock:
        stylesheet.reset()
        css = stylesheet.generate(document)
    style = document.new_tag("style", attrs={"id": STYLE_ELEMENT_ID})
    style.string = css
    placeholder.replace_with(style)
    return document
