"""Modifier pass: directive attributes and queued element edits.

Runs on the parsed document after locals are rendered.

Declarative directives carry state computed by the template::

    <a href="/books" z-active="@">           active when the path starts /books
    <li z-active="{{ tab == 'a' | flag }}">  active when truthy
    <input z-invalid="{{ errors.name }}">    class "invalid"
    <button z-disabled="true">               native disabled attribute
    <input z-checked="0">                    native checked removed
    <option z-selected="1">                  native selected set

Each directive is rewritten to ``true``/``false`` afterwards, so a
second pass over the output changes nothing.

Imperative edits come from ``ctx.with_element(id)`` in an action and
are applied after the declarative pass, in the order they were queued.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import StrEnum

from bs4 import Tag

from zen.templating.dom import (
    Document,
    add_class,
    get_element_by_id,
    remove_attribute,
    remove_class,
    select_with_attribute,
    set_attribute,
)

FALSEY_TOKENS = frozenset({"false", "0", "null", "undefined", ""})

ACTIVE_CLASS = "active"
INVALID_CLASS = "invalid"

# directive -> (native attribute, value written when set)
_NATIVE_FLAGS: dict[str, tuple[str, str]] = {
    "z-disabled": ("disabled", ""),
    "z-checked": ("checked", "checked"),
    "z-selected": ("selected", "selected"),
}


def is_falsey(value: str | None) -> bool:
    return (value or "").strip() in FALSEY_TOKENS


class Operation(StrEnum):
    ADD_CLASS = "addClass"
    REMOVE_CLASS = "removeClass"
    SET_ATTR = "setAttr"
    REMOVE_ATTR = "removeAttr"


@dataclass(frozen=True, slots=True)
class ElementModification:
    """One queued edit for an element id."""

    operation: Operation
    data: tuple[str, ...]


type ModificationQueue = Mapping[str, Sequence[ElementModification]]


def href_matches(href: str | None, pathname: str) -> bool:
    """``z-active="@"`` rule: the path starts with the link target."""
    if href is None:
        return False
    target = href.split("#", 1)[0].split("?", 1)[0]
    return pathname.startswith(target)


def _mirror(element: Tag, directive: str, state: bool) -> None:
    set_attribute(element, directive, "true" if state else "false")


def _apply_active(document: Document, pathname: str) -> None:
    for element in select_with_attribute(document, "z-active"):
        value = str(element.get("z-active", ""))
        if value.strip() == "@":
            href = element.get("href")
            active = href_matches(str(href) if href is not None else None, pathname)
        else:
            active = not is_falsey(value)
        if active:
            add_class(element, ACTIVE_CLASS)
        else:
            remove_class(element, ACTIVE_CLASS)
        _mirror(element, "z-active", active)


def _apply_invalid(document: Document) -> None:
    for element in select_with_attribute(document, "z-invalid"):
        invalid = not is_falsey(str(element.get("z-invalid", "")))
        if invalid:
            add_class(element, INVALID_CLASS)
        else:
            remove_class(element, INVALID_CLASS)
        _mirror(element, "z-invalid", invalid)


def _apply_native_flags(document: Document) -> None:
    for directive, (native, native_value) in _NATIVE_FLAGS.items():
        for element in select_with_attribute(document, directive):
            on = not is_falsey(str(element.get(directive, "")))
            if on:
                set_attribute(element, native, native_value)
            else:
                remove_attribute(element, native)
            _mirror(element, directive, on)


def _apply_queued(document: Document, modifications: ModificationQueue) -> None:
    for element_id, queue in modifications.items():
        element = get_element_by_id(document, element_id)
        if element is None:
            continue
        for modification in queue:
            match modification.operation:
                case Operation.ADD_CLASS:
                    add_class(element, *modification.data)
                case Operation.REMOVE_CLASS:
                    remove_class(element, *modification.data)
                case Operation.SET_ATTR:
                    name, value = modification.data
                    set_attribute(element, name, value)
                case Operation.REMOVE_ATTR:
                    remove_attribute(element, modification.data[0])


def apply_modifiers(
    document: Document,
    pathname: str,
    modifications: ModificationQueue | None = None,
) -> Document:
    """Run the declarative pass, then the queued edits. Mutates *document*."""
    _apply_active(document, pathname)
    _apply_invalid(document)
    _apply_native_flags(document)
    if modifications:
        _apply_queued(document, modifications)
    return document
