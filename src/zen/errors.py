"""Zen exception hierarchy.

Shared across the router, app, handler, pages and data layers so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class ZenError(Exception):
    """Base for all zen-specific errors."""


class ConfigurationError(ZenError):
    """Raised when app configuration is invalid.

    Surfaces at startup (``App._freeze()`` or lifespan startup), never
    mid-request.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(ZenError):
    """An error that maps directly to an HTTP status code.

    Raised by the router and middleware. The ASGI handler catches these
    and turns them into responses; page requests that miss get the
    nearest ``_404`` template instead of a bare status.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: the path exists but not for this method.

    Carries an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        super().__init__(
            status=405,
            detail=detail or f"Method not allowed. Allowed methods: {allow_value}",
            headers=(("Allow", allow_value),),
        )
