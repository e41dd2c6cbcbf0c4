"""Session middleware: server-side sessions keyed by a signed cookie.

The cookie carries only a session id, signed with ``itsdangerous``.
Session data lives in a pluggable store: in memory for a single process,
or Redis when several workers share state. Either way the whole session
is loaded at request start and written back as one document at request
end, so concurrent requests for the same session race with last write
wins.

The current session is held in a ContextVar and reachable via
``get_session()`` from any handler or middleware.
"""

from __future__ import annotations

import json as json_module
import logging
import secrets
import time
from collections.abc import Mapping
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Any, Protocol

from itsdangerous import BadSignature, URLSafeTimedSerializer

from zen.errors import ConfigurationError
from zen.http.request import Request
from zen.middleware.protocol import AnyResponse, Next

logger = logging.getLogger("zen.server")

_session_var: ContextVar[Session | None] = ContextVar("zen_session", default=None)

FLASH_KEY = "_flash"


def get_session() -> Session:
    """Return the current session.

    Raises ``LookupError`` if called outside a request with
    ``SessionMiddleware`` active.
    """
    session = _session_var.get()
    if session is None:
        msg = (
            "No active session. Ensure SessionMiddleware is added "
            "to the app before accessing the session."
        )
        raise LookupError(msg)
    return session


class Session:
    """One visitor's session document.

    Keys starting with ``_`` are internal (the render snapshot, pending
    flash values) and never exposed to templates.

    Flash values are set once and read once: ``get()`` on a flashed key
    returns the value and forgets it.
    """

    __slots__ = ("_data", "id")

    def __init__(self, session_id: str, data: Mapping[str, Any] | None = None) -> None:
        self.id = session_id
        self._data: dict[str, Any] = dict(data or {})

    def get(self, key: str, default: Any = None) -> Any:
        flashed = self._data.get(FLASH_KEY)
        if flashed and key in flashed:
            value = flashed.pop(key)
            if not flashed:
                del self._data[FLASH_KEY]
            return value
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def flash(self, key: str, value: Any) -> None:
        """Store *value* until the next ``get(key)``."""
        self._data.setdefault(FLASH_KEY, {})[key] = value

    def consume_flash(self) -> dict[str, Any]:
        """Read (and so clear) every pending flash value."""
        return {key: self.get(key) for key in list(self._data.get(FLASH_KEY, {}))}

    def public_values(self) -> dict[str, Any]:
        """Values whose keys are not internal."""
        return {k: v for k, v in self._data.items() if not k.startswith("_")}

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __repr__(self) -> str:
        return f"<Session {self.id[:8]}… {sorted(self._data)!r}>"


# -- Stores --


class SessionStore(Protocol):
    """Persistence backend for session documents."""

    async def load(self, session_id: str) -> dict[str, Any] | None: ...

    async def save(self, session_id: str, data: dict[str, Any], max_age: int) -> None: ...

    async def delete(self, session_id: str) -> None: ...


def _dumps(data: dict[str, Any]) -> str:
    return json_module.dumps(data, default=str)


class MemorySessionStore:
    """In-process session store.

    Documents are kept serialized so a loaded session never aliases the
    stored one, matching what a networked store would do.
    """

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: dict[str, tuple[float, str]] = {}

    async def load(self, session_id: str) -> dict[str, Any] | None:
        item = self._items.get(session_id)
        if item is None:
            return None
        expires_at, raw = item
        if expires_at < time.time():
            del self._items[session_id]
            return None
        return json_module.loads(raw)

    async def save(self, session_id: str, data: dict[str, Any], max_age: int) -> None:
        self._items[session_id] = (time.time() + max_age, _dumps(data))

    async def delete(self, session_id: str) -> None:
        self._items.pop(session_id, None)

    def __len__(self) -> int:
        return len(self._items)


class RedisSessionStore:
    """Redis-backed session store (``redis.asyncio``).

    Documents are stored as JSON strings under ``<prefix><session id>``
    with a TTL of the session max age.
    """

    __slots__ = ("_client", "_prefix")

    def __init__(
        self,
        url: str = "redis://localhost:6379/0",
        *,
        client: Any = None,
        prefix: str = "zen:session:",
    ) -> None:
        if client is None:
            from redis.asyncio import Redis

            client = Redis.from_url(url, decode_responses=True)
        self._client = client
        self._prefix = prefix

    async def load(self, session_id: str) -> dict[str, Any] | None:
        raw = await self._client.get(self._prefix + session_id)
        if raw is None:
            return None
        return json_module.loads(raw)

    async def save(self, session_id: str, data: dict[str, Any], max_age: int) -> None:
        await self._client.set(self._prefix + session_id, _dumps(data), ex=max_age)

    async def delete(self, session_id: str) -> None:
        await self._client.delete(self._prefix + session_id)

    async def close(self) -> None:
        await self._client.aclose()


# -- Configuration --


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session middleware configuration.

    ``secret_key`` is required: the cookie is signed, the data is
    never sent to the client.
    """

    secret_key: str
    cookie_name: str = "zen_session"
    max_age: int = 14 * 24 * 3600
    path: str = "/"
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


# -- Middleware --


class SessionMiddleware:
    """Load the session before dispatch and persist it afterwards.

    Usage::

        from zen.middleware.sessions import SessionConfig, SessionMiddleware

        app.add_middleware(SessionMiddleware(SessionConfig(secret_key="...")))

        def _(ctx, data):
            visits = get_session().get("visits", 0) + 1
            get_session().set("visits", visits)
            ctx.render()
    """

    __slots__ = ("_config", "_serializer", "store")

    def __init__(self, config: SessionConfig, store: SessionStore | None = None) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)
        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key, salt="zen.session")
        self.store: SessionStore = store if store is not None else MemorySessionStore()

    def _session_id(self, request: Request) -> str | None:
        cookie_value = request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return None
        try:
            session_id = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadSignature:
            logger.debug("Discarding session cookie with a bad or expired signature")
            return None
        return session_id if isinstance(session_id, str) else None

    async def load(self, request: Request) -> Session:
        """Resolve the request's session, starting a fresh one if needed."""
        session_id = self._session_id(request)
        if session_id is not None:
            data = await self.store.load(session_id)
            if data is not None:
                return Session(session_id, data)
        return Session(secrets.token_urlsafe(32))

    async def __call__(self, request: Request, next: Next) -> AnyResponse:
        session = await self.load(request)
        token = _session_var.set(session)
        cfg = self._config
        try:
            response = await next(request)
        finally:
            _session_var.reset(token)
            # Writes made before a handler error are kept
            await self.store.save(session.id, session.to_dict(), cfg.max_age)
        # Re-sign on every response for sliding expiration
        return response.with_cookie(
            name=cfg.cookie_name,
            value=self._serializer.dumps(session.id),
            max_age=cfg.max_age,
            path=cfg.path,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )
