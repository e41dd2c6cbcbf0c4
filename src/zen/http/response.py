"""HTTP response with a chainable ``.with_*()`` API.

Each transformation returns a new Response. Contexts build one up as a
handler calls ``render()``, ``redirect()``, ``set_header()`` and friends.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from zen.http.cookies import SetCookie


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/html; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()
    cookies: tuple[SetCookie, ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> Response:
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> Response:
        """Add a header, replacing any earlier value with the same name."""
        lowered = name.lower()
        kept = tuple((k, v) for k, v in self.headers if k.lower() != lowered)
        return replace(self, headers=(*kept, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> Response:
        response = self
        for name, value in headers.items():
            response = response.with_header(name, value)
        return response

    def with_content_type(self, content_type: str) -> Response:
        return replace(self, content_type=content_type)

    def with_cookie(
        self,
        name: str,
        value: str,
        *,
        max_age: int | None = None,
        path: str = "/",
        secure: bool = False,
        httponly: bool = True,
        samesite: str = "lax",
    ) -> Response:
        """Return a new Response with an additional Set-Cookie."""
        cookie = SetCookie(
            name=name,
            value=value,
            max_age=max_age,
            path=path,
            secure=secure,
            httponly=httponly,
            samesite=samesite,
        )
        return replace(self, cookies=(*self.cookies, cookie))

    # -- Client protocol headers --

    def with_z_redirect(self, url: str, *, replace_state: bool = False) -> Response:
        """Ask the zen client to navigate to *url*.

        ``replace_state`` also sets ``z-replace-state`` so the client
        swaps the history entry instead of pushing one.
        """
        response = self.with_header("z-redirect", url)
        if replace_state:
            response = response.with_header("z-replace-state", url)
        return response

    def with_z_error(self) -> Response:
        """Mark an action response as an error fragment."""
        return self.with_header("z-error", "true")

    # -- Body helpers --

    def header(self, name: str, default: str = "") -> str:
        """Return the last value set for *name*."""
        lowered = name.lower()
        for key, value in reversed(self.headers):
            if key.lower() == lowered:
                return value
        return default

    @property
    def body_bytes(self) -> bytes:
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


@dataclass(frozen=True, slots=True)
class Redirect:
    """A native HTTP redirect."""

    url: str
    status: int = 302

    def to_response(self) -> Response:
        return Response(status=self.status).with_header("Location", self.url)


@dataclass(frozen=True, slots=True)
class SSEResponse:
    """Sentinel response for Server-Sent Events.

    The handler streams it directly over ASGI instead of sending a body.
    ``.with_*()`` are no-ops so middleware chains stay uniform.
    """

    event_stream: Any  # EventStream (avoids an import cycle)
    headers: tuple[tuple[str, str], ...] = field(default=())
    cookies: tuple[SetCookie, ...] = ()

    def with_status(self, status: int) -> SSEResponse:  # noqa: ARG002
        return self

    def with_header(self, name: str, value: str) -> SSEResponse:  # noqa: ARG002
        return self

    def with_cookie(self, name: str, value: str, **kwargs: Any) -> SSEResponse:  # noqa: ARG002
        return self
