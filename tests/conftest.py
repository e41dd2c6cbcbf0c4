"""Shared fixtures: throwaway sites on disk and request builders."""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
from kida import Environment

from zen.config import AppConfig
from zen.http.request import Request
from zen.templating.integration import create_environment
from zen.templating.pipeline import Renderer

type SiteWriter = Callable[[dict[str, str]], Path]


@pytest.fixture
def site(tmp_path: Path) -> SiteWriter:
    """Write ``{relative path: text}`` under a fresh site root.

    Paths start with ``pages/`` or ``actions/``; both directories always
    exist.
    """
    root = tmp_path / "site"
    (root / "pages").mkdir(parents=True)
    (root / "actions").mkdir(parents=True)

    def write(files: dict[str, str]) -> Path:
        for rel, text in files.items():
            path = root / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        return root

    return write


def make_request(
    path: str = "/",
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    query: str = "",
    body: bytes = b"",
) -> Request:
    raw_headers = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()]
    scope: dict[str, Any] = {
        "type": "http",
        "method": method,
        "path": path,
        "query_string": query.encode("latin-1"),
        "headers": raw_headers,
        "http_version": "1.1",
        "scheme": "http",
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 5000),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": body, "more_body": False}

    return Request.from_asgi(scope, receive)


@pytest.fixture
def kida_env(tmp_path: Path) -> Environment:
    (tmp_path / "pages").mkdir(exist_ok=True)
    return create_environment(AppConfig(root=tmp_path))


@pytest.fixture
def renderer(kida_env: Environment) -> Renderer:
    return Renderer(kida_env)
