"""Validation result: validated values or messages per field."""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ValidationResult:
    """The outcome of ``validate()``. Falsy when any field failed::

        result = validate(payload, rules)
        if not result:
            data["invalid"] = result.first_errors()

    ``errors`` maps field names to every message for that field::

        {"title": ["This field is required"],
         "email": ["Must be a valid email address"]}
    """

    data: dict[str, str]
    errors: dict[str, list[str]]

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def first_errors(self) -> dict[str, str]:
        """``{field: first message}``, the shape templates and models use."""
        return {name: messages[0] for name, messages in self.errors.items() if messages}

    def __bool__(self) -> bool:
        return self.is_valid
