"""Middleware: protocol-based, no inheritance required.

A middleware is any callable matching::

    async def mw(request: Request, next: Next) -> AnyResponse

Built-in middleware:
    SessionMiddleware -- server-side sessions keyed by a signed cookie
"""

from zen.middleware.protocol import AnyResponse, Middleware, Next
from zen.middleware.sessions import (
    MemorySessionStore,
    RedisSessionStore,
    Session,
    SessionConfig,
    SessionMiddleware,
    SessionStore,
    get_session,
)

__all__ = [
    "AnyResponse",
    "MemorySessionStore",
    "Middleware",
    "Next",
    "RedisSessionStore",
    "Session",
    "SessionConfig",
    "SessionMiddleware",
    "SessionStore",
    "get_session",
]
