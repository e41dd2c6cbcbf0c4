"""Built-in validation rules.

A rule takes the value's text form and returns an error message, or
``None`` when the value passes::

    def even(value: str) -> str | None:
        return None if value.isdigit() and int(value) % 2 == 0 else "Must be even"

Parameterised rules are factories returning a rule (``max_length(200)``).
"""

import re
from collections.abc import Callable

type Validator = Callable[[str], str | None]


# -- Presence --


def required(value: str) -> str | None:
    """Present and not blank."""
    if not value or not value.strip():
        return "This field is required"
    return None


def optional(value: str) -> str | None:
    """Marker: an empty value skips the field's other rules."""
    return None


# -- Length --


def max_length(n: int) -> Validator:
    def check(value: str) -> str | None:
        if len(value) > n:
            return f"Must be at most {n} characters"
        return None

    return check


def min_length(n: int) -> Validator:
    def check(value: str) -> str | None:
        if len(value) < n:
            return f"Must be at least {n} characters"
        return None

    return check


# -- Format --

# Structure only, not deliverability
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")

_URL_RE = re.compile(r"^https?://[^\s/$.?#].\S*$", re.IGNORECASE)


def email(value: str) -> str | None:
    if not _EMAIL_RE.match(value):
        return "Must be a valid email address"
    return None


def url(value: str) -> str | None:
    """An http or https URL."""
    if not _URL_RE.match(value):
        return "Must be a valid URL"
    return None


def matches(pattern: str, message: str | None = None) -> Validator:
    compiled = re.compile(pattern)

    def check(value: str) -> str | None:
        if not compiled.match(value):
            return message or f"Must match pattern: {pattern}"
        return None

    return check


# -- Choice --


def one_of(*choices: str) -> Validator:
    allowed = frozenset(choices)

    def check(value: str) -> str | None:
        if value not in allowed:
            return f"Must be one of: {', '.join(sorted(allowed))}"
        return None

    return check


# -- Numbers --


def integer(value: str) -> str | None:
    try:
        int(value)
    except (ValueError, TypeError):
        return "Must be a whole number"
    return None


def number(value: str) -> str | None:
    try:
        float(value)
    except (ValueError, TypeError):
        return "Must be a number"
    return None
