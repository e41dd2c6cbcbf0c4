"""Locals pass: render a page source with kida and parse the result.

Templates see the context's data bag as top-level names and the request
metadata as ``meta``::

    <h1>{{ title }}</h1>
    <p>{{ meta.pathname }} ({{ meta.method }})</p>
    {% if meta.flash.notice %}<p class="notice">{{ meta.flash.notice }}</p>{% end %}
"""

from typing import Any

from zen.middleware.sessions import Session
from zen.templating.dom import Document, parse_html
from zen.templating.integration import TemplateCache


def template_context(data: dict[str, Any], meta: dict[str, Any]) -> dict[str, Any]:
    return {**data, "meta": meta}


def render_locals(
    template_text: str,
    data: dict[str, Any],
    meta: Any,
    session: Session | None,
    templates: TemplateCache,
) -> Document:
    """Refresh ``meta.session`` from *session*, render, parse.

    Session values are read at render time: handlers may have changed
    them since the context was built.
    """
    meta.session = session.public_values() if session is not None else {}
    rendered = templates.render(template_text, template_context(data, meta.to_dict()))
    return parse_html(rendered)
