"""Validation: composable rules, flat results.

Rules are plain callables ``(str) -> str | None``. ``validate()`` runs
them over a mapping and collects messages per field::

    from zen.validation import email, max_length, required, validate

    result = validate(payload, {
        "title": [required, max_length(200)],
        "email": [optional, email],
    })
    if not result:
        data["invalid"] = result.first_errors()

``Model`` uses the same rules for its schema.
"""

from collections.abc import Mapping
from typing import Any

from zen.validation.result import ValidationResult
from zen.validation.rules import (
    Validator,
    email,
    integer,
    matches,
    max_length,
    min_length,
    number,
    one_of,
    optional,
    required,
    url,
)

__all__ = [
    "ValidationResult",
    "Validator",
    "as_text",
    "email",
    "integer",
    "matches",
    "max_length",
    "min_length",
    "number",
    "one_of",
    "optional",
    "required",
    "url",
    "validate",
]


def as_text(value: Any) -> str:
    """Form view of a stored value: ``None`` is empty, bools are ``true``/``false``."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def validate(
    data: Mapping[str, Any],
    rules: Mapping[str, list[Validator]],
    *,
    partial: bool = False,
) -> ValidationResult:
    """Validate *data* against *rules*.

    Values are checked in their text form (see ``as_text``). A field
    whose rules include ``optional`` skips the rest when empty.
    ``required`` stops at its own failure. With ``partial=True`` only
    fields present in *data* are checked.
    """
    errors: dict[str, list[str]] = {}
    cleaned: dict[str, str] = {}

    for field_name, validators in rules.items():
        if partial and field_name not in data:
            continue
        value = as_text(data.get(field_name))
        if optional in validators and not value.strip():
            cleaned[field_name] = value
            continue

        field_errors: list[str] = []
        for validator in validators:
            if validator is optional:
                continue
            error = validator(value)
            if error is None:
                continue
            field_errors.append(error)
            if validator is required:
                break

        if field_errors:
            errors[field_name] = field_errors
        else:
            cleaned[field_name] = value

    return ValidationResult(data=cleaned, errors=errors)
