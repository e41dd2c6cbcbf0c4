"""Thin DOM layer over BeautifulSoup.

Everything that parses or edits markup goes through these helpers, so
the rest of the render pipeline never names the parser backend.
``html.parser`` keeps documents as written: no implied ``<html>`` or
``<body>`` is added to fragments.
"""

from bs4 import BeautifulSoup, Tag

type Document = BeautifulSoup


def parse_html(markup: str) -> Document:
    return BeautifulSoup(markup, "html.parser")


def get_element_by_id(document: Document, element_id: str) -> Tag | None:
    """Find an element by id without going through a CSS selector.

    Ids may contain ``.`` and ``:``, which a selector would misread.
    """
    found = document.find(id=element_id)
    return found if isinstance(found, Tag) else None


def select_with_attribute(document: Document, name: str) -> list[Tag]:
    """Every element carrying attribute *name*, in document order."""
    return [tag for tag in document.find_all(attrs={name: True}) if isinstance(tag, Tag)]


def get_classes(element: Tag) -> list[str]:
    value = element.get("class")
    if value is None:
        return []
    if isinstance(value, str):
        return value.split()
    return list(value)


def add_class(element: Tag, *names: str) -> None:
    classes = get_classes(element)
    for name in names:
        if name and name not in classes:
            classes.append(name)
    element["class"] = classes


def remove_class(element: Tag, *names: str) -> None:
    classes = [c for c in get_classes(element) if c not in names]
    if classes:
        element["class"] = classes
    elif "class" in element.attrs:
        del element["class"]


def set_attribute(element: Tag, name: str, value: str = "") -> None:
    element[name] = value


def remove_attribute(element: Tag, name: str) -> None:
    if name in element.attrs:
        del element[name]


def outer_html(element: Tag) -> str:
    return str(element)
