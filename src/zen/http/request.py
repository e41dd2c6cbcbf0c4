"""Immutable HTTP request.

Frozen metadata with async body access. The request is what was
received; contexts read it, nothing mutates it.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field, replace
from typing import Any

from zen._internal.asgi import Receive
from zen.http.cookies import parse_cookies
from zen.http.headers import Headers
from zen.http.query import QueryParams


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    Cookies are parsed once in ``from_asgi``. The body is read lazily and
    cached, so middleware and handlers can both call ``body()``.
    """

    method: str
    path: str
    headers: Headers
    query: QueryParams
    path_params: dict[str, str]
    http_version: str
    scheme: str
    server: tuple[str, int] | None
    client: tuple[str, int] | None
    cookies: Mapping[str, str]

    _receive: Receive

    # Mutable cache behind a frozen reference
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    # -- Client protocol flags --

    @property
    def is_merge(self) -> bool:
        """True for a client-side soft navigation (``z-merge`` header)."""
        return bool(self.headers.get("z-merge"))

    @property
    def is_reload(self) -> bool:
        """True when the dev reload client re-fetches the page (``z-reload``)."""
        return bool(self.headers.get("z-reload"))

    # -- URL parts --

    @property
    def host(self) -> str:
        """``Host`` header, falling back to the ASGI server address."""
        host = self.headers.get("host")
        if host:
            return host
        if self.server is None:
            return ""
        name, port = self.server
        default = 443 if self.scheme == "https" else 80
        return name if port == default else f"{name}:{port}"

    @property
    def hostname(self) -> str:
        return self.host.rsplit(":", 1)[0] if ":" in self.host else self.host

    @property
    def port(self) -> str:
        return self.host.rsplit(":", 1)[1] if ":" in self.host else ""

    @property
    def search(self) -> str:
        raw = self.query.raw
        return f"?{raw}" if raw else ""

    @property
    def href(self) -> str:
        return f"{self.scheme}://{self.host}{self.path}{self.search}"

    @property
    def ip(self) -> str:
        return self.client[0] if self.client else ""

    @property
    def content_type(self) -> str | None:
        return self.headers.get("content-type")

    # -- Async body access --

    async def body(self) -> bytes:
        """Read the full request body (cached after the first call)."""
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON."""
        raw = await self.body()
        return json_module.loads(raw)

    async def text(self) -> str:
        raw = await self.body()
        return raw.decode("utf-8")

    # -- Derivation --

    def with_path_params(self, path_params: dict[str, str]) -> Request:
        """Copy of this request carrying router-captured params."""
        return replace(self, path_params=path_params)

    # -- Factory --

    @classmethod
    def from_asgi(
        cls,
        scope: Mapping[str, Any],
        receive: Receive,
        path_params: dict[str, str] | None = None,
    ) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers = Headers(tuple(scope.get("headers", ())))
        server = scope.get("server")
        client = scope.get("client")
        return cls(
            method=scope["method"],
            path=scope["path"],
            headers=headers,
            query=QueryParams(scope.get("query_string", b"")),
            path_params=path_params or {},
            http_version=scope.get("http_version", "1.1"),
            scheme=scope.get("scheme", "http"),
            server=tuple(server) if server else None,
            client=tuple(client) if client else None,
            cookies=parse_cookies(headers.get("cookie", "")),
            _receive=receive,
        )
