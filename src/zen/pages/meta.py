"""Request metadata exposed to templates as ``meta``.

A page request captures it from the live request. An action restores it
from the session snapshot, so ``meta.pathname`` inside an action is the
path of the page that was rendered, not ``/@/<module>``.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from zen.http.request import Request


@dataclass(slots=True)
class RequestMeta:
    """The one canonical set of request fields for a render."""

    dev: bool = False
    error: dict[str, Any] = field(default_factory=dict)
    flash: dict[str, Any] = field(default_factory=dict)
    hash: str = ""  # fragments never reach the server
    headers: dict[str, str] = field(default_factory=dict)
    host: str = ""
    hostname: str = ""
    href: str = ""
    ip: str = ""
    method: str = "GET"
    nocache: int = 0
    params: dict[str, str] = field(default_factory=dict)
    pathname: str = "/"
    port: str = ""
    protocol: str = "http:"
    query: dict[str, str] = field(default_factory=dict)
    search: str = ""
    secure: bool = False
    session: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_request(
        cls,
        request: Request,
        params: Mapping[str, str] | None = None,
        *,
        dev: bool = False,
        nocache: int = 0,
        flash: Mapping[str, Any] | None = None,
    ) -> RequestMeta:
        return cls(
            dev=dev,
            flash=dict(flash or {}),
            headers=request.headers.as_dict(),
            host=request.host,
            hostname=request.hostname,
            href=request.href,
            ip=request.ip,
            method=request.method,
            nocache=nocache,
            params=dict(params or {}),
            pathname=request.path,
            port=request.port,
            protocol=f"{request.scheme}:",
            query=request.query.as_dict(),
            search=request.search,
            secure=request.scheme == "https",
        )

    def to_dict(self) -> dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> RequestMeta:
        """Rebuild from ``to_dict()`` output. Unknown keys are ignored."""
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})
