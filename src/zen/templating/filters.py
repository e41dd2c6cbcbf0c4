"""Built-in zen template filters.

Registered on every zen kida Environment. They cover the patterns the
directive attributes need: state flags written as ``true``/``false``
and per-field error messages from ``Model.validate_*``.
"""

import html
from typing import Any

from kida.template import Markup


def flag(value: Any) -> str:
    """Render a value as a directive flag.

    Python booleans print as ``True``/``False``, which the modifier pass
    does not understand. Use this filter inside directive attributes::

        <input z-invalid="{{ invalid.email | flag }}">
        <a z-active="{{ (meta.pathname == '/') | flag }}">

    ``None`` and empty containers are ``false`` too.
    """
    if isinstance(value, str):
        return value
    return "true" if value else "false"


def attr(value: Any, name: str) -> str | Markup:
    """Output an HTML attribute when *value* is truthy, else nothing.

    Example:
        <p{{ note_class | attr("class") }}>
        -> <p class="muted">   (when note_class is "muted")
        -> <p>                 (when note_class is None or "")
    """
    if not value:
        return ""
    return Markup(f' {name}="{html.escape(str(value))}"')


def field_error(errors: Any, field_name: str) -> str:
    """Message for one field from a ``{field: message}`` error map.

    Example:
        {% if errors %}<small>{{ errors | field_error("title") }}</small>{% end %}
    """
    if isinstance(errors, dict):
        message = errors.get(field_name)
        return str(message) if message else ""
    return ""


BUILTIN_FILTERS: dict[str, Any] = {
    "attr": attr,
    "field_error": field_error,
    "flag": flag,
}
